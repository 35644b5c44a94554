"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Dict, Generator, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fileserver import FileServer, ServerConfig


# 42 bytes, the size used by the index.html example
INDEX_HTML = b"<html><body><h1>Hello!</h1></body></html>\n"


@pytest.fixture
def docroot(tmp_path: Path) -> Path:
    """
    A small document root:

        index.html       42 bytes
        a b.txt
        style.css
        notes.unknownext
        sub/
            nested.txt
        empty/
    """
    (tmp_path / "index.html").write_bytes(INDEX_HTML)
    (tmp_path / "a b.txt").write_bytes(b"spaced out\n")
    (tmp_path / "style.css").write_bytes(b"body { color: red; }\n")
    (tmp_path / "notes.unknownext").write_bytes(b"plain\n")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "nested.txt").write_bytes(b"nested\n")
    (tmp_path / "empty").mkdir()
    return tmp_path


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def config(docroot: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        root_dir=str(docroot),
        workers=2,
        recv_timeout=2.0,
        log_level="WARNING",
    )


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: FileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.address

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_listening(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes on a fresh connection and read until the server closes."""
        return send_raw(self.address, raw, timeout=timeout)

    def get(self, target: str) -> "ParsedResponse":
        raw = f"GET {target} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode("latin-1")
        return ParsedResponse.from_bytes(self.request(raw))


class ParsedResponse:
    """Minimal response splitter for assertions."""

    def __init__(self, status: int, headers: Dict[str, str], body: bytes, raw: bytes):
        self.status = status
        self.headers = headers
        self.body = body
        self.raw = raw

    @classmethod
    def from_bytes(cls, raw: bytes) -> "ParsedResponse":
        head, _, body = raw.partition(b"\r\n\r\n")
        lines = head.decode("latin-1").split("\r\n")
        status = int(lines[0].split(" ")[1])
        headers = {}
        for line in lines[1:]:
            name, _, value = line.partition(": ")
            headers[name] = value
        return cls(status, headers, body, raw)


def send_raw(address: Tuple[str, int], raw: bytes, timeout: float = 5.0) -> bytes:
    """Connect, send raw bytes, and collect everything until EOF."""
    with socket.create_connection(address, timeout=timeout) as sock:
        if raw:
            sock.sendall(raw)
        chunks = []
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running file server serving the docroot fixture."""
    test_srv = TestServer(FileServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()
