"""
pytest configuration and fixtures.
"""

import dataclasses
import socket
import threading
from pathlib import Path
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tinyhttpd import HTTPServer, ServerConfig, create_app


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /echo/abc HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"User-Agent: pytest/8.0\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a small body."""
    body = b"hello, file"
    return (
        b"POST /files/notes.txt HTTP/1.1\r\n"
        b"Host: localhost:4221\r\n"
        b"Content-Type: application/octet-stream\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def files_dir(tmp_path: Path) -> Path:
    """Empty base directory for /files/."""
    directory = tmp_path / "files"
    directory.mkdir()
    return directory


@pytest.fixture
def config(files_dir: Path) -> ServerConfig:
    """Test server configuration on an OS-assigned port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        max_workers=4,
        queue_size=8,
        timeout=5.0,
        directory=str(files_dir),
        log_level="WARNING",
    )


class ServerThread:
    """Runs an HTTPServer in a background thread for socket-level tests."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"configure_logging": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def request(self, data: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes, half-close, and return everything the server sent."""
        return raw_request(self.port, data, timeout=timeout)

    def fetch(self, data: bytes, timeout: float = 5.0) -> tuple[str, dict, bytes]:
        """request() followed by split_response()."""
        return split_response(self.request(data, timeout=timeout))


def raw_request(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """
    Minimal HTTP client: write the bytes, half-close, read until the
    server closes.

    Returns b"" when the server closed without answering.
    """
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        sock.sendall(data)
        sock.shutdown(socket.SHUT_WR)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(raw: bytes) -> tuple[str, dict, bytes]:
    """Split a raw response into (status line, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return lines[0], headers, body


@pytest.fixture
def make_server(config: ServerConfig) -> Generator:
    """
    Factory for running create_app() servers.

    Keyword arguments override fields of the default test config:

        srv = make_server(timeout=0.5)
    """
    started = []

    def factory(**overrides) -> ServerThread:
        server_config = dataclasses.replace(config, **overrides)
        srv = ServerThread(create_app(server_config))
        srv.start()
        started.append(srv)
        return srv

    yield factory

    for srv in started:
        srv.stop()


@pytest.fixture
def test_server(make_server) -> ServerThread:
    """A running server with the default test config."""
    return make_server()
