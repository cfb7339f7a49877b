"""
HTTP handlers for the demo service.

- CertHandler     plain HTTP, any path: download the root CA as root.crt
- ServiceHandler  HTTPS, "/" root info page, "/health" health check

The handlers get their state (root PEM, HealthState) through the factory
functions below, never through module globals.
"""

import logging
import socket
import threading
import time
from http.server import BaseHTTPRequestHandler
from typing import Annotated
from urllib.parse import parse_qs, urlsplit

from pydantic import Field, StrictInt, TypeAdapter

from selfsigned import config
from selfsigned.common.utils import parse_duration, rfc3339_nano

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_STATUS = 204

StatusCode = Annotated[StrictInt, Field(ge=100, le=999)]
_status_adapter = TypeAdapter(StatusCode)

# OpenSSL names of the TLS 1.2 suites an ECDSA certificate can negotiate.
# TLS 1.3 suites already carry their IANA names.
IANA_CIPHER_NAMES = {
    "ECDHE-ECDSA-AES256-GCM-SHA384": "TLS_ECDHE_ECDSA_WITH_AES_256_GCM_SHA384",
    "ECDHE-ECDSA-AES128-GCM-SHA256": "TLS_ECDHE_ECDSA_WITH_AES_128_GCM_SHA256",
    "ECDHE-ECDSA-CHACHA20-POLY1305": "TLS_ECDHE_ECDSA_WITH_CHACHA20_POLY1305_SHA256",
    "ECDHE-ECDSA-AES256-SHA384": "TLS_ECDHE_ECDSA_WITH_AES_256_CBC_SHA384",
    "ECDHE-ECDSA-AES128-SHA256": "TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA256",
    "ECDHE-ECDSA-AES256-SHA": "TLS_ECDHE_ECDSA_WITH_AES_256_CBC_SHA",
    "ECDHE-ECDSA-AES128-SHA": "TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA",
}


class HealthState:
    """
    Status code answered by /health.

    One writer (POST /health) and many readers; every read sees the last
    completed write.
    """

    def __init__(self, status_code: int = DEFAULT_HEALTH_STATUS):
        self._lock = threading.Lock()
        self._status_code = status_code

    @property
    def status_code(self) -> int:
        with self._lock:
            return self._status_code

    def set(self, status_code: int):
        with self._lock:
            self._status_code = status_code


def parse_status_code(body: bytes) -> int:
    """Decode a JSON integer status code. Raises ValidationError."""
    return _status_adapter.validate_json(body)


def iana_cipher_name(name: str) -> str:
    return IANA_CIPHER_NAMES.get(name, name)


class _LoggingHandler(BaseHTTPRequestHandler):
    def log_message(self, format, *args):
        logger.info("%s - %s", self.address_string(), format % args)

    def _write(self, status: int, body: bytes = b"", headers=None):
        self.send_response(status)
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body and self.command != "HEAD":
            self.wfile.write(body)


class CertHandler(_LoggingHandler):
    certificate = b""

    def _send_certificate(self):
        self._write(200, self.certificate, {
            "Content-Type": "application/x-x509-ca-cert",
            "Content-Disposition": "attachment; filename=root.crt",
        })

    do_GET = _send_certificate
    do_HEAD = _send_certificate
    do_POST = _send_certificate


class ServiceHandler(_LoggingHandler):
    health: HealthState = None

    def _route(self):
        url = urlsplit(self.path)
        if url.path == "/health":
            self._health()
        else:
            self._root(parse_qs(url.query))

    do_GET = _route
    do_HEAD = _route
    do_POST = _route
    do_PUT = _route
    do_DELETE = _route

    def _read_body(self) -> bytes:
        """Raises ValueError on a malformed Content-Length."""
        length = int(self.headers.get("Content-Length") or 0)
        if length < 0:
            raise ValueError("negative Content-Length")
        return self.rfile.read(length) if length > 0 else b""

    def _tls_info(self):
        cipher = getattr(self.connection, "cipher", None)
        version = getattr(self.connection, "version", None)
        if cipher is None or version is None:
            return "", ""
        return iana_cipher_name((cipher() or ("",))[0]), version() or ""

    def _root(self, query):
        wait = query.get("wait", [""])[0]
        if wait:
            seconds = parse_duration(wait)
            if seconds is not None and seconds > 0:
                time.sleep(seconds)

        cipher, tls_version = self._tls_info()
        lines = [
            f"HOSTNAME: {socket.gethostname()}",
            f"BUILD_VERSION: {config.BUILD_VERSION}",
            f"BUILD_COMMIT: {config.BUILD_COMMIT}",
            f"BUILD_RFC3339: {config.BUILD_RFC3339}",
            f"TIMESTAMP: {rfc3339_nano()}",
            f"PROTOCOL: {self.request_version}",
            f"TLS_CIPHERSUITE: {cipher}",
            f"TLS_VERSION: {tls_version}",
        ]
        body = ("\n".join(lines) + "\n").encode()
        self._write(200, body, {
            "Cache-Control": "must-validate",
            "Content-Type": "text/plain; charset=utf-8",
        })

    def _health(self):
        if self.command != "POST":
            self._write(self.health.status_code)
            return
        try:
            status_code = parse_status_code(self._read_body())
        except ValueError as e:
            # bad Content-Length or a body that is not a JSON status code
            self._write(400, str(e).encode(), {"Content-Type": "text/plain; charset=utf-8"})
            return
        logger.info("Update health check status code [%d]", status_code)
        self.health.set(status_code)
        self._write(200)


def cert_handler(certificate: bytes):
    """Handler class serving `certificate` (root CA PEM) verbatim."""
    return type("RootCertHandler", (CertHandler,), {"certificate": bytes(certificate)})


def service_handler(health: HealthState):
    return type("BoundServiceHandler", (ServiceHandler,), {"health": health})
