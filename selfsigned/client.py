# selfsigned/client.py
"""
Check a running selfsigned server: download its root CA over plain HTTP,
then fetch the HTTPS root page trusting only that root.

Usage:
    python -m selfsigned.client --host myhost.local
"""

import argparse
import http.client
import logging
import ssl
import sys

from selfsigned import config
from selfsigned.crypto import pki

logger = logging.getLogger(__name__)

TIMEOUT = 10


def fetch_root_ca(host: str, port: int = config.HTTP_PORT, timeout: float = TIMEOUT) -> bytes:
    conn = http.client.HTTPConnection(host, port, timeout=timeout)
    try:
        conn.request("GET", "/")
        resp = conn.getresponse()
        body = resp.read()
        if resp.status != 200:
            raise ConnectionError(f"root CA download failed: HTTP {resp.status}")
    finally:
        conn.close()
    # must parse as a certificate before we trust it
    pki.load_certificate(body)
    return body


def trusting_context(root_pem: bytes) -> ssl.SSLContext:
    return ssl.create_default_context(cadata=root_pem.decode("ascii"))


def https_request(host: str, root_pem: bytes, path: str = "/", method: str = "GET",
                  body: bytes = None, port: int = config.HTTPS_PORT, timeout: float = TIMEOUT):
    """Returns (status, body bytes)."""
    conn = http.client.HTTPSConnection(host, port, timeout=timeout, context=trusting_context(root_pem))
    try:
        conn.request(method, path, body=body)
        resp = conn.getresponse()
        return resp.status, resp.read()
    finally:
        conn.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Check a selfsigned server end to end")
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--http-port", type=int, default=config.HTTP_PORT)
    parser.add_argument("--https-port", type=int, default=config.HTTPS_PORT)
    args = parser.parse_args(argv)
    logging.basicConfig(level=config.LOG_LEVEL)

    try:
        root_pem = fetch_root_ca(args.host, args.http_port)
        root = pki.load_certificate(root_pem)
        logger.info("Downloaded root CA %s (sha256 %s)",
                    root.subject.rfc4514_string(), pki.cert_sha256_fingerprint_hex(root))
        status, body = https_request(args.host, root_pem, port=args.https_port)
    except (OSError, ValueError) as e:
        logger.error("Check failed: %s", e)
        return 1

    print(f"[+] HTTPS {status}")
    print(body.decode("utf-8", errors="replace"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
