import http.client
import re
import threading
from datetime import timedelta, timezone
from http.server import ThreadingHTTPServer

import pytest
from pydantic import ValidationError

from selfsigned.common.utils import parse_duration, rfc3339_nano
from selfsigned.handlers import (
    HealthState,
    cert_handler,
    iana_cipher_name,
    parse_status_code,
    service_handler,
)


@pytest.fixture
def serve():
    servers = []

    def _serve(handler):
        server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return server.server_address[1]

    yield _serve
    for server in servers:
        server.shutdown()
        server.server_close()


def _request(port, method="GET", path="/", body=None):
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=10)
    try:
        conn.request(method, path, body=body)
        resp = conn.getresponse()
        return resp.status, dict(resp.getheaders()), resp.read()
    finally:
        conn.close()


def test_health_state_defaults_and_updates():
    health = HealthState()
    assert health.status_code == 204
    health.set(503)
    assert health.status_code == 503


def test_health_state_under_concurrent_writers():
    health = HealthState()
    codes = list(range(200, 260))
    threads = [threading.Thread(target=health.set, args=(c,)) for c in codes]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert health.status_code in codes


def test_parse_status_code():
    assert parse_status_code(b"503") == 503
    for bad in (b'"503"', b"abc", b"", b"12", b"5.5"):
        with pytest.raises(ValidationError):
            parse_status_code(bad)


@pytest.mark.parametrize("text,seconds", [
    ("2s", 2.0),
    ("500ms", 0.5),
    ("1m30s", 90.0),
    ("1.5h", 5400.0),
    ("0", 0.0),
    ("-1s", -1.0),
])
def test_parse_duration(text, seconds):
    assert parse_duration(text) == pytest.approx(seconds)


@pytest.mark.parametrize("text", ["", "5", "abc", "1x", "s", "-"])
def test_parse_duration_invalid(text):
    assert parse_duration(text) is None


def test_cert_download(serve, root):
    port = serve(cert_handler(root.public_bytes))
    status, headers, body = _request(port, path="/anything")
    assert status == 200
    assert headers["Content-Type"] == "application/x-x509-ca-cert"
    assert headers["Content-Disposition"] == "attachment; filename=root.crt"
    assert body == root.public_bytes


def test_health_endpoint(serve):
    health = HealthState()
    port = serve(service_handler(health))

    status, _, body = _request(port, path="/health")
    assert status == 204 and body == b""

    status, _, _ = _request(port, "POST", "/health", body=b"503")
    assert status == 200
    assert health.status_code == 503

    status, _, _ = _request(port, path="/health")
    assert status == 503


def test_health_endpoint_rejects_bad_body(serve):
    health = HealthState()
    port = serve(service_handler(health))
    status, _, body = _request(port, "POST", "/health", body=b"not json")
    assert status == 400
    assert body
    assert health.status_code == 204


def test_root_page_over_plain_http(serve):
    port = serve(service_handler(HealthState()))
    status, headers, body = _request(port, path="/?wait=10ms")
    assert status == 200
    assert headers["Cache-Control"] == "must-validate"
    keys = [line.split(":", 1)[0] for line in body.decode().splitlines()]
    assert keys == [
        "HOSTNAME", "BUILD_VERSION", "BUILD_COMMIT", "BUILD_RFC3339",
        "TIMESTAMP", "PROTOCOL", "TLS_CIPHERSUITE", "TLS_VERSION",
    ]
    assert "PROTOCOL: HTTP/1.1" in body.decode()


def test_handlers_do_not_share_health(serve):
    a, b = HealthState(), HealthState(500)
    port_a = serve(service_handler(a))
    port_b = serve(service_handler(b))
    assert _request(port_a, path="/health")[0] == 204
    assert _request(port_b, path="/health")[0] == 500


@pytest.mark.parametrize("length", ["abc", "-5"])
def test_health_post_with_bad_content_length(serve, length):
    health = HealthState()
    port = serve(service_handler(health))
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=10)
    try:
        conn.putrequest("POST", "/health")
        conn.putheader("Content-Length", length)
        conn.endheaders()
        resp = conn.getresponse()
        assert resp.status == 400
        assert resp.read()
    finally:
        conn.close()
    assert health.status_code == 204


def test_rfc3339_nano():
    ns = 1_700_000_000_123_456_789
    assert rfc3339_nano(ns, tz=timezone.utc) == "2023-11-14T22:13:20.123456789Z"
    assert rfc3339_nano(1_700_000_000_500_000_000, tz=timezone.utc) == "2023-11-14T22:13:20.5Z"
    assert rfc3339_nano(1_700_000_000 * 10 ** 9, tz=timezone.utc) == "2023-11-14T22:13:20Z"
    assert rfc3339_nano(ns, tz=timezone(timedelta(hours=2))) == "2023-11-15T00:13:20.123456789+02:00"
    assert rfc3339_nano(ns, tz=timezone(timedelta(hours=-5, minutes=-30))).endswith("-05:30")


def test_root_page_timestamp_format(serve):
    port = serve(service_handler(HealthState()))
    _, _, body = _request(port)
    stamp = [line for line in body.decode().splitlines() if line.startswith("TIMESTAMP: ")][0]
    assert re.fullmatch(r"TIMESTAMP: \d{4}-\d\d-\d\dT\d\d:\d\d:\d\d(\.\d{1,9})?(Z|[+-]\d\d:\d\d)", stamp)


def test_iana_cipher_names():
    assert iana_cipher_name("ECDHE-ECDSA-AES256-GCM-SHA384") == "TLS_ECDHE_ECDSA_WITH_AES_256_GCM_SHA384"
    assert iana_cipher_name("ECDHE-ECDSA-CHACHA20-POLY1305") == "TLS_ECDHE_ECDSA_WITH_CHACHA20_POLY1305_SHA256"
    assert iana_cipher_name("TLS_AES_256_GCM_SHA384") == "TLS_AES_256_GCM_SHA384"
