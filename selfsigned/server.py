# selfsigned/server.py
"""
Demo service with a throwaway PKI.

On startup a root CA, an intermediate CA and a server certificate for the
local hostname are generated in memory. Then:

- http://<host>:HTTP_PORT/    downloads the root CA (root.crt)
- https://<host>:HTTPS_PORT/  root info page, served with the full chain
- https://<host>:HTTPS_PORT/health   health check (POST a status code to change it)

Usage:
    python -m selfsigned.server [--org "ACME Company"] [--host extra.name]
"""

import argparse
import logging
import os
import socket
import ssl
import sys
import tempfile
import threading
from http.server import ThreadingHTTPServer
from typing import List, Sequence

from selfsigned import config
from selfsigned.common.models import Chain, SubjectFields
from selfsigned.crypto.chain import full_chain_pem, generate_chain
from selfsigned.crypto.errors import CertSignError
from selfsigned.handlers import HealthState, cert_handler, service_handler

logger = logging.getLogger(__name__)


def local_hosts(hostname: str = None) -> List[str]:
    """["<short>.local", "<hostname>"] for the machine's hostname."""
    hostname = hostname or socket.gethostname()
    short = hostname.split(".", 1)[0]
    hosts = [f"{short}.local"]
    if hostname not in hosts:
        hosts.append(hostname)
    return hosts


def build_chain(organization: str, hosts: Sequence[str]) -> Chain:
    return generate_chain(SubjectFields(organization=[organization]), hosts)


def tls_context(chain: Chain) -> ssl.SSLContext:
    """
    Server context presenting leaf + intermediate + root.

    SSLContext.load_cert_chain only accepts file paths, there is no in-memory
    variant in the stdlib ssl module. The PEM text therefore passes through a
    0700 temporary directory (key file 0600) that is removed as soon as
    load_cert_chain returns; nothing outlives this call.
    """
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    with tempfile.TemporaryDirectory(prefix="selfsigned-") as tmp:
        cert_path = os.path.join(tmp, "chain.pem")
        key_path = os.path.join(tmp, "key.pem")
        with open(cert_path, "wb") as f:
            f.write(full_chain_pem(chain.leaf, chain.intermediate, chain.root))
        with os.fdopen(os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600), "wb") as f:
            f.write(chain.leaf.private_bytes)
        ctx.load_cert_chain(cert_path, key_path)
    return ctx


class TLSHTTPServer(ThreadingHTTPServer):
    """
    Threaded HTTPS server that handshakes per connection.

    accept() only wraps the socket; the handshake runs in the request thread
    under `timeout`, so a peer that never sends a ClientHello ties up its own
    thread and nothing else.
    """

    def __init__(self, server_address, handler_class, context: ssl.SSLContext,
                 timeout: float = config.TLS_HANDSHAKE_TIMEOUT):
        super().__init__(server_address, handler_class)
        self.context = context
        self.connection_timeout = timeout

    def get_request(self):
        sock, addr = self.socket.accept()
        sock.settimeout(self.connection_timeout)
        return self.context.wrap_socket(sock, server_side=True, do_handshake_on_connect=False), addr

    def finish_request(self, request, client_address):
        try:
            request.do_handshake()
        except (ssl.SSLError, OSError) as e:
            logger.info("TLS handshake with %s failed: %s", client_address[0], e)
            return
        super().finish_request(request, client_address)


def make_http_server(chain: Chain, host: str, port: int) -> ThreadingHTTPServer:
    return ThreadingHTTPServer((host, port), cert_handler(chain.root.public_bytes))


def make_https_server(chain: Chain, health: HealthState, host: str, port: int) -> TLSHTTPServer:
    return TLSHTTPServer((host, port), service_handler(health), tls_context(chain))


def serve_in_thread(server: ThreadingHTTPServer) -> threading.Thread:
    t = threading.Thread(target=server.serve_forever, daemon=True)
    t.start()
    return t


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="HTTPS demo server with an ephemeral PKI")
    parser.add_argument("--org", default=config.ORGANIZATION, help="Subject organization")
    parser.add_argument("--bind", default=config.BIND_HOST, help="Address to listen on")
    parser.add_argument("--http-port", type=int, default=config.HTTP_PORT)
    parser.add_argument("--https-port", type=int, default=config.HTTPS_PORT)
    parser.add_argument("--host", action="append", default=[],
                        help="Extra DNS name or IP for the server certificate (repeatable)")
    return parser.parse_args(argv)


def main(argv=None):
    args = _parse_args(argv)
    logging.basicConfig(level=config.LOG_LEVEL)
    logger.info("selfsigned %s (commit %s, built %s)",
                config.BUILD_VERSION, config.BUILD_COMMIT, config.BUILD_RFC3339)

    hosts = local_hosts()
    hosts += [h for h in args.host if h not in hosts]
    try:
        chain = build_chain(args.org, hosts)
    except CertSignError as e:
        logger.critical("Certificate generation failed at stage %s: %s", e.stage, e.message)
        return 1
    except ValueError as e:
        logger.critical("Invalid certificate subject: %s", e)
        return 1

    health = HealthState()
    http_server = make_http_server(chain, args.bind, args.http_port)
    https_server = make_https_server(chain, health, args.bind, args.https_port)

    serve_in_thread(http_server)
    logger.info("Root CA download on http://%s:%d/", args.bind, args.http_port)
    logger.info("Serving HTTPS on https://%s:%d/ for %s", args.bind, args.https_port, ", ".join(hosts))
    try:
        https_server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        https_server.server_close()
        http_server.shutdown()
        http_server.server_close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
