"""
pytest configuration and fixtures.
"""

import http.client
import os
import socket
import threading
from typing import Generator

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import ServerConfig, StaticServer
from staticserver.handlers import StaticFileHandler, compile_template
from staticserver.http import HTTPRequest


HUNDRED_BYTES = bytes(range(100))


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """
    A small directory tree to serve.

        site/
        ├── hello.txt        "Hello, world!\\n"
        ├── data.bin         bytes 0..99
        ├── empty.txt        (0 bytes)
        ├── page.html
        ├── big.txt          ~300 KiB of text, several chunks
        └── docs/
            ├── b.md
            └── a.md
    """
    root = tmp_path / "site"
    root.mkdir()
    (root / "hello.txt").write_bytes(b"Hello, world!\n")
    (root / "data.bin").write_bytes(HUNDRED_BYTES)
    (root / "empty.txt").write_bytes(b"")
    (root / "page.html").write_text("<p>hi</p>", encoding="utf-8")
    (root / "big.txt").write_bytes(b"".join(b"line %06d\n" % i for i in range(30000)))
    docs = root / "docs"
    docs.mkdir()
    (docs / "b.md").write_text("# B\n", encoding="utf-8")
    (docs / "a.md").write_text("# A\n", encoding="utf-8")
    return root


@pytest.fixture
def handler(site: Path) -> StaticFileHandler:
    """File handler over ``site`` with the bundled listing template."""
    return StaticFileHandler(str(site), compile_template(), chunk_size=4096)


def make_request(path: str, method: str = "GET", version: str = "HTTP/1.1", **headers) -> HTTPRequest:
    """HTTPRequest with header names given as keyword args: if_none_match="..." ."""
    return HTTPRequest(
        method=method,
        path=path,
        version=version,
        headers={name.replace("_", "-").lower(): value for name, value in headers.items()},
        client_address=("127.0.0.1", 50000),
    )


def read_body(response) -> bytes:
    """Drain a response body, streamed or fixed."""
    if response.stream is None:
        return response.body
    try:
        return b"".join(response.stream)
    finally:
        response.close()


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class BackgroundServer:
    """Runs a StaticServer on a background thread."""

    def __init__(self, server: StaticServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self) -> "BackgroundServer":
        self.server.bind()
        self._thread = threading.Thread(target=self.server.start, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")
        return self

    def stop(self) -> None:
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def connect(self, timeout: float = 5.0) -> http.client.HTTPConnection:
        return http.client.HTTPConnection("127.0.0.1", self.port, timeout=timeout)

    def raw(self, data: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes and read until the server closes the connection."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as s:
            s.sendall(data)
            chunks = []
            while True:
                chunk = s.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def running_server(site: Path) -> Generator[BackgroundServer, None, None]:
    """A live server on an OS-assigned port serving ``site``."""
    config = ServerConfig(
        host="127.0.0.1",
        port=0,
        root=str(site),
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        chunk_size=8192,
        log_level="WARNING",
    )
    background = BackgroundServer(StaticServer(config)).start()
    yield background
    background.stop()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove STATIC_* variables so config tests see only what they set."""
    for name in list(os.environ):
        if name.startswith("STATIC_"):
            monkeypatch.delenv(name)
    return monkeypatch
