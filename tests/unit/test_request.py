"""
Unit tests for HTTP request parsing.
"""

import pytest

from staticserver.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
)


@pytest.fixture
def sample_get_request() -> bytes:
    """A conditional, ranged, compressed GET."""
    return (
        b"GET /media/clip%20one.mp4?v=3 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Range: bytes=0-1023\r\n"
        b"Accept-Encoding: gzip, deflate\r\n"
        b"If-None-Match: 3f786850e387550fdab836ed7e6dc881de23001b\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Method, decoded path, query and version are split out."""
        request = RequestParser().parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/media/clip one.mp4"
        assert request.query == "v=3"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        """The headers the file pipeline reads are available by name."""
        request = parse_request(sample_get_request)

        assert request.get_header("Range") == "bytes=0-1023"
        assert request.get_header("accept-encoding") == "gzip, deflate"
        assert request.get_header("If-None-Match").startswith("3f78")
        assert request.user_agent == "pytest"
        assert request.is_keep_alive is True

    def test_missing_header_is_none(self):
        """Absent headers come back as None, not an empty string."""
        request = parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n\r\n")

        assert request.get_header("Accept-Encoding") is None
        assert request.get_header("Range") is None
        assert request.get_header("Range", "bytes=0-") == "bytes=0-"

    def test_repeated_headers_are_joined(self):
        """A header sent twice reads as one comma-separated value."""
        raw = (
            b"GET / HTTP/1.1\r\n"
            b"Accept-Encoding: br\r\n"
            b"Accept-Encoding: deflate\r\n"
            b"\r\n"
        )
        assert parse_request(raw).get_header("accept-encoding") == "br, deflate"

    def test_parse_invalid_method(self):
        """Unknown methods are rejected with 405."""
        raw = b"BREW /pot HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 405

    def test_parse_invalid_request_line(self):
        """A request line without path and version is a 400."""
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET\r\nHost: test\r\n\r\n")

        assert exc_info.value.status_code == 400

    def test_unsupported_version(self):
        """Only HTTP/1.0 and HTTP/1.1 are spoken."""
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET / HTTP/2.0\r\n\r\n")

        assert exc_info.value.status_code == 505

    def test_incomplete_request(self):
        """Missing blank line after the headers is a 400."""
        with pytest.raises(HTTPParseError):
            parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n")

    def test_parse_missing_headers(self):
        """A request with no headers at all is fine."""
        request = parse_request(b"GET / HTTP/1.1\r\n\r\n")

        assert request.path == "/"
        assert request.headers == {}

    def test_dot_segments_are_left_to_the_resolver(self):
        """The parser does not judge paths; the resolver does."""
        request = parse_request(b"GET /../../etc/passwd HTTP/1.1\r\n\r\n")
        assert request.path == "/../../etc/passwd"

    def test_parse_request_too_large(self):
        """Oversized requests are rejected with 413."""
        parser = RequestParser(max_request_size=100)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 413

    def test_bad_content_length(self):
        """A non-numeric Content-Length is a 400."""
        raw = b"GET / HTTP/1.1\r\nContent-Length: lots\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_http_version_parsing(self):
        """Keep-alive defaults differ between HTTP/1.0 and HTTP/1.1."""
        request_10 = parse_request(b"GET / HTTP/1.0\r\nHost: test\r\n\r\n")
        assert request_10.version == "HTTP/1.0"
        assert request_10.is_keep_alive is False

        request_10_ka = parse_request(b"GET / HTTP/1.0\r\nConnection: keep-alive\r\n\r\n")
        assert request_10_ka.is_keep_alive is True

        request_11 = parse_request(b"GET / HTTP/1.1\r\nConnection: close\r\n\r\n")
        assert request_11.is_keep_alive is False

    def test_case_insensitive_headers(self):
        """Header names are case-insensitive."""
        request = parse_request(b"GET / HTTP/1.1\r\nIF-MODIFIED-SINCE: x\r\n\r\n")

        assert request.get_header("If-Modified-Since") == "x"
        assert request.headers["if-modified-since"] == "x"


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_is_head(self):
        assert HTTPRequest(method="HEAD", path="/").is_head
        assert not HTTPRequest(method="GET", path="/").is_head

    def test_user_agent_default(self):
        assert HTTPRequest(method="GET", path="/").user_agent == ""
