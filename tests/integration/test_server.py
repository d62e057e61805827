"""
End-to-end tests against a live server on a background thread.
"""

import gzip
import socket
import zlib
from pathlib import Path

import pytest

from conftest import HUNDRED_BYTES, BackgroundServer
from staticserver import ServerConfig, StaticServer
from staticserver.middleware import middleware


def get(server: BackgroundServer, path: str, method: str = "GET", headers=None):
    conn = server.connect()
    try:
        conn.request(method, path, headers=headers or {})
        response = conn.getresponse()
        return response, response.read()
    finally:
        conn.close()


def split_raw(data: bytes):
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return lines[0], headers, body


class TestBasicServing:
    def test_file(self, running_server: BackgroundServer):
        response, body = get(running_server, "/hello.txt")

        assert response.status == 200
        assert response.getheader("Content-Type") == "text/plain;charset=utf-8"
        assert response.getheader("Content-Length") == "14"
        assert response.getheader("Server") == "staticserver/1.0"
        assert response.getheader("Date") is not None
        assert body == b"Hello, world!\n"

    def test_large_file(self, running_server: BackgroundServer, site: Path):
        response, body = get(running_server, "/big.txt")

        assert response.status == 200
        assert body == (site / "big.txt").read_bytes()

    def test_missing(self, running_server: BackgroundServer):
        response, body = get(running_server, "/nope.txt")

        assert response.status == 404
        assert body == b"Not Found"

    def test_favicon(self, running_server: BackgroundServer, site: Path):
        (site / "favicon.ico").write_bytes(b"icon")
        response, body = get(running_server, "/favicon.ico")

        assert response.status == 404
        assert body == b"Not Found"

    def test_percent_encoded_path(self, running_server: BackgroundServer, site: Path):
        (site / "with space.txt").write_bytes(b"spaced")
        response, body = get(running_server, "/with%20space.txt")

        assert response.status == 200
        assert body == b"spaced"

    def test_query_string_ignored(self, running_server: BackgroundServer):
        response, body = get(running_server, "/hello.txt?v=3")
        assert body == b"Hello, world!\n"

    def test_head(self, running_server: BackgroundServer):
        response, body = get(running_server, "/hello.txt", method="HEAD")

        assert response.status == 200
        assert response.getheader("Content-Length") == "14"
        assert body == b""

    def test_post_rejected(self, running_server: BackgroundServer):
        response, _ = get(running_server, "/hello.txt", method="POST")

        assert response.status == 405
        assert response.getheader("Allow") == "GET, HEAD"


class TestDirectoryListing:
    def test_listing(self, running_server: BackgroundServer, site: Path):
        response, body = get(running_server, "/docs/")
        html = body.decode("utf-8")

        assert response.status == 200
        assert response.getheader("Content-Type") == "text/html"
        assert str(site / "docs") in html
        assert 'href="/docs/a.md"' in html
        assert 'href="/docs/b.md"' in html

    def test_link_is_followable(self, running_server: BackgroundServer):
        _, body = get(running_server, "/docs")
        assert b'href="/docs/a.md"' in body

        response, content = get(running_server, "/docs/a.md")
        assert response.status == 200
        assert content == b"# A\n"


class TestCaching:
    def test_etag_round_trip(self, running_server: BackgroundServer):
        first, _ = get(running_server, "/hello.txt")
        etag = first.getheader("ETag")

        second, body = get(running_server, "/hello.txt", headers={"If-None-Match": etag})

        assert second.status == 304
        assert body == b""
        assert second.getheader("ETag") == etag
        assert second.getheader("Cache-Control") == "private, max-age=60"

    def test_last_modified_round_trip(self, running_server: BackgroundServer):
        first, _ = get(running_server, "/hello.txt")
        stamp = first.getheader("Last-Modified")

        second, _ = get(running_server, "/hello.txt", headers={"If-Modified-Since": stamp})
        assert second.status == 304

    def test_changed_file_is_resent(self, running_server: BackgroundServer, site: Path):
        first, _ = get(running_server, "/hello.txt")
        etag = first.getheader("ETag")
        (site / "hello.txt").write_bytes(b"Something longer than before\n")

        second, body = get(running_server, "/hello.txt", headers={"If-None-Match": etag})

        assert second.status == 200
        assert body == b"Something longer than before\n"


class TestRanges:
    def test_partial_content(self, running_server: BackgroundServer):
        response, body = get(running_server, "/data.bin", headers={"Range": "bytes=10-19"})

        assert response.status == 206
        assert response.getheader("Accept-Range") == "bytes"
        assert response.getheader("Content-Range") == "bytes 10-19/100"
        assert body == HUNDRED_BYTES[10:20]

    def test_end_clamped(self, running_server: BackgroundServer):
        response, body = get(running_server, "/data.bin", headers={"Range": "bytes=95-500"})

        assert response.status == 206
        assert body == HUNDRED_BYTES[95:]

    def test_compressed_range(self, running_server: BackgroundServer):
        response, body = get(
            running_server,
            "/data.bin",
            headers={"Range": "bytes=0-49", "Accept-Encoding": "gzip"},
        )

        assert response.status == 206
        assert response.getheader("Content-Encoding") == "gzip"
        assert gzip.decompress(body) == HUNDRED_BYTES[:50]


class TestCompression:
    def test_gzip_is_chunked(self, running_server: BackgroundServer, site: Path):
        response, body = get(running_server, "/big.txt", headers={"Accept-Encoding": "gzip"})

        assert response.status == 200
        assert response.getheader("Content-Encoding") == "gzip"
        assert response.getheader("Transfer-Encoding") == "chunked"
        assert response.getheader("Content-Length") is None
        assert gzip.decompress(body) == (site / "big.txt").read_bytes()

    def test_deflate(self, running_server: BackgroundServer):
        response, body = get(running_server, "/hello.txt", headers={"Accept-Encoding": "deflate"})

        assert response.getheader("Content-Encoding") == "deflate"
        assert zlib.decompress(body) == b"Hello, world!\n"

    def test_http10_compressed_body_ends_at_close(self, running_server: BackgroundServer):
        raw = running_server.raw(
            b"GET /hello.txt HTTP/1.0\r\nAccept-Encoding: gzip\r\n\r\n"
        )
        status_line, headers, body = split_raw(raw)

        assert status_line == "HTTP/1.1 200 OK"
        assert headers["connection"] == "close"
        assert "transfer-encoding" not in headers
        assert "content-length" not in headers
        assert gzip.decompress(body) == b"Hello, world!\n"


class TestConnectionHandling:
    def test_keep_alive(self, running_server: BackgroundServer):
        conn = running_server.connect()
        try:
            conn.request("GET", "/hello.txt")
            first = conn.getresponse()
            assert first.getheader("Connection") == "keep-alive"
            assert first.read() == b"Hello, world!\n"

            conn.request("GET", "/data.bin", headers={"Range": "bytes=0-3"})
            second = conn.getresponse()
            assert second.status == 206
            assert second.read() == HUNDRED_BYTES[:4]
        finally:
            conn.close()

    def test_keep_alive_after_chunked(self, running_server: BackgroundServer):
        conn = running_server.connect()
        try:
            conn.request("GET", "/big.txt", headers={"Accept-Encoding": "gzip"})
            conn.getresponse().read()

            conn.request("GET", "/hello.txt")
            assert conn.getresponse().read() == b"Hello, world!\n"
        finally:
            conn.close()

    def test_connection_close(self, running_server: BackgroundServer):
        raw = running_server.raw(b"GET /hello.txt HTTP/1.1\r\nConnection: close\r\n\r\n")
        status_line, headers, body = split_raw(raw)

        assert status_line == "HTTP/1.1 200 OK"
        assert headers["connection"] == "close"
        assert body == b"Hello, world!\n"

    def test_bad_request_line(self, running_server: BackgroundServer):
        raw = running_server.raw(b"NONSENSE\r\n\r\n")
        status_line, _, body = split_raw(raw)

        assert status_line == "HTTP/1.1 400 Bad Request"
        assert body == b"Bad Request"

    def test_unsupported_version(self, running_server: BackgroundServer):
        raw = running_server.raw(b"GET / HTTP/2.0\r\n\r\n")
        assert raw.startswith(b"HTTP/1.1 505 ")


class TestLifecycle:
    def make_config(self, site: Path, port: int = 0) -> ServerConfig:
        return ServerConfig(
            host="127.0.0.1",
            port=port,
            root=str(site),
            min_workers=2,
            max_workers=2,
            keep_alive_timeout=1.0,
            log_level="WARNING",
        )

    def test_extra_middleware(self, site: Path):
        @middleware
        def served_by(request, next):
            response = next(request)
            response.set_header("X-Served-By", "edge-1")
            return response

        server = BackgroundServer(StaticServer(self.make_config(site)).use(served_by)).start()
        try:
            response, body = get(server, "/hello.txt")
        finally:
            server.stop()

        assert response.getheader("X-Served-By") == "edge-1"
        assert body == b"Hello, world!\n"

    def test_port_in_use_leaves_no_workers(self, site: Path):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            server = StaticServer(self.make_config(site, port=blocker.getsockname()[1]))

            with pytest.raises(OSError):
                server.start()

        assert server.is_running is False
        assert server._thread_pool.stats["workers"] == 0
