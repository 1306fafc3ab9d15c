"""Shared fixtures for the exporter test suite."""

import ssl
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
import trustme

from cortex_exporter.config.settings import get_config
from cortex_exporter.logging.audit import get_logger

REMOTE_WRITE_URL = "https://cortex.example/api/prom/push"


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear the config cache.

    Usage:
        override_settings(CORTEX_BEARER_TOKEN="abc", CORTEX_LOG_LEVEL="DEBUG")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Config re-reads env
        get_config.cache_clear()

    yield _override

    get_config.cache_clear()


@pytest.fixture
def restore_logger():
    """setup_logging mutates the shared logger; put it back afterwards."""
    logger = get_logger()
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield logger
    for handler in logger.handlers:
        if handler not in saved[0]:
            handler.close()
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


@pytest.fixture
def write_file(tmp_path):
    """Factory fixture: write a credential file and return its path as str."""
    def _write(name: str, contents: str) -> str:
        path = tmp_path / name
        path.write_text(contents, encoding="utf-8")
        return str(path)

    return _write


@dataclass
class SeenRequest:
    method: str
    path: str
    headers: dict
    body: bytes
    peer_cert: dict | None = None


@dataclass
class LocalServer:
    url: str
    requests: list[SeenRequest] = field(default_factory=list)
    ca_file: str = ""
    ca: trustme.CA | None = None


class _RecordingHandler(BaseHTTPRequestHandler):
    """Records every request and answers with the configured status."""

    def do_GET(self):
        self._record()

    def do_POST(self):
        self._record()

    def _record(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length) if length else b""
        peer_cert = None
        if isinstance(self.connection, ssl.SSLSocket):
            peer_cert = self.connection.getpeercert() or None
        self.server.seen.append(SeenRequest(
            method=self.command,
            path=self.path,
            headers=dict(self.headers),
            body=body,
            peer_cert=peer_cert,
        ))
        reply = self.server.reply_body
        self.send_response(self.server.reply_status)
        self.send_header("Content-Length", str(len(reply)))
        self.end_headers()
        self.wfile.write(reply)

    def log_message(self, format, *args):
        pass


def _serve(ssl_context: ssl.SSLContext | None = None, status: int = 200, body: bytes = b"ok"):
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), _RecordingHandler)
    httpd.seen = []
    httpd.reply_status = status
    httpd.reply_body = body
    if ssl_context is not None:
        httpd.socket = ssl_context.wrap_socket(httpd.socket, server_side=True)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    return httpd, thread


@pytest.fixture
def recording_server():
    """Plain HTTP server; also usable as a forward proxy since it records absolute paths."""
    httpd, thread = _serve()
    host, port = httpd.server_address[:2]
    yield LocalServer(url=f"http://{host}:{port}", requests=httpd.seen)
    httpd.shutdown()
    httpd.server_close()
    thread.join(timeout=5)


@pytest.fixture
def tls_server_factory(tmp_path):
    """Factory fixture: start an HTTPS server with a fresh CA.

    Args (to the factory):
        hostnames: identities on the serving certificate.
        require_client_cert: demand a client certificate signed by the same CA.
    """
    running = []

    def _start(hostnames=("127.0.0.1",), require_client_cert: bool = False) -> LocalServer:
        ca = trustme.CA()
        server_cert = ca.issue_cert(*hostnames)
        ctx = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        server_cert.configure_cert(ctx)
        if require_client_cert:
            ca.configure_trust(ctx)
            ctx.verify_mode = ssl.CERT_REQUIRED

        ca_file = tmp_path / f"ca_{len(running)}.pem"
        ca.cert_pem.write_to_path(str(ca_file))

        httpd, thread = _serve(ssl_context=ctx)
        running.append((httpd, thread))
        port = httpd.server_address[1]
        return LocalServer(
            url=f"https://127.0.0.1:{port}",
            requests=httpd.seen,
            ca_file=str(ca_file),
            ca=ca,
        )

    yield _start

    for httpd, thread in running:
        httpd.shutdown()
        httpd.server_close()
        thread.join(timeout=5)


@pytest.fixture
def client_cert_files(tmp_path):
    """Factory fixture: issue a client cert from a CA, return (cert_file, key_file)."""
    def _issue(ca: trustme.CA) -> tuple[str, str]:
        cert = ca.issue_cert("client@cortex.example")
        cert_file = tmp_path / "client_cert.pem"
        key_file = tmp_path / "client_key.pem"
        cert.cert_chain_pems[0].write_to_path(str(cert_file))
        cert.private_key_pem.write_to_path(str(key_file))
        return str(cert_file), str(key_file)

    return _issue
