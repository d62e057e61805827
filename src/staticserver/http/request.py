"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes read by core/connection.py into an HTTPRequest.

A file server only needs a handful of things from a request:

    GET /media/clip.mp4?x=1 HTTP/1.1\r\n      ← method, path, version
    Host: localhost:8080\r\n
    Range: bytes=0-1023\r\n                    ← RangeSelector
    Accept-Encoding: gzip, deflate\r\n         ← EncodingNegotiator
    If-None-Match: 3f786850e387...\r\n         ← CacheValidator
    \r\n

The path is percent-decoded here ("/my%20file.txt" → "/my file.txt") and
the query string is split off. Path normalization and the check that the
path stays under the served root happen later, in handlers/resolver.py,
because only the resolver knows what the root is.

Header names are lowercased at parse time; HTTP header names are
case-insensitive (RFC 7230 section 3.2).

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from urllib.parse import unquote, urlparse
import re


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the status code the server should answer with:

        400 Bad Request                - malformed request line / headers
        405 Method Not Allowed         - unknown method
        413 Payload Too Large          - request exceeds max_request_size
        505 HTTP Version Not Supported - anything but HTTP/1.0 or 1.1
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         "GET", "HEAD", ...
        path:           Percent-decoded path without the query string.
        version:        "HTTP/1.1" or "HTTP/1.0".
        headers:        Header name (lowercase) → value.
        query:          Raw query string, "" when absent.
        body:           Request body bytes (ignored by the file handler).
        client_address: (ip, port) of the peer, for the access log.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query: str = ""
    body: bytes = b""
    client_address: Tuple[str, int] = ("", 0)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Case-insensitive header lookup.

        Returns ``default`` (None unless given) when the header is absent,
        which lets callers tell "missing" apart from "present but empty".
        """
        return self.headers.get(name.lower(), default)

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_head(self) -> bool:
        """HEAD gets the same headers as GET and no body."""
        return self.method == "HEAD"

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client expects the connection to stay open.

        HTTP/1.1 defaults to keep-alive unless "Connection: close";
        HTTP/1.0 defaults to close unless "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"


class RequestParser:
    """
    Parses raw HTTP/1.x request bytes into HTTPRequest objects.

    Request line:  ^([A-Z]+) ([^ ]+) (HTTP/\\d\\.\\d)$
    Header line:   ^([^:]+):\\s*(.*)$

    Repeated headers are folded into one comma-separated value, so
    "Accept-Encoding: gzip" followed by "Accept-Encoding: deflate" reads
    as "gzip, deflate". Malformed header lines are skipped.
    """

    VALID_METHODS = {
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Args:
            data: Request bytes up to and including the body.
            client_address: Peer address, copied onto the request.

        Raises:
            HTTPParseError: With the status code to answer.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes", status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query=query,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}", status_code=505
            )

        parsed = urlparse(target)
        path = unquote(parsed.path) or "/"
        return method, path, parsed.query, version

    def _parse_headers(self, lines: list) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        last_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            # obs-fold: continuation of the previous header value
            if line[0] in (" ", "\t"):
                if last_name is not None:
                    headers[last_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name = match.group(1).strip().lower()
            value = match.group(2).strip()
            last_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024,
) -> HTTPRequest:
    """Parse ``data`` with a one-off RequestParser."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
