"""
=============================================================================
HTTP RESPONSE
=============================================================================

Responses come in two shapes:

    FIXED BODY                           STREAMED BODY
    ──────────                           ─────────────
    HTTPResponse(body=b"Not Found")      HTTPResponse(stream=<generator>)

    Error pages, directory listings,     File contents. The generator reads
    304s. Small, built in memory.        the file lazily, one chunk at a
                                         time, possibly through a
                                         compressor.

Serialization is done by iter_bytes(), which yields the header block and
then the body pieces. The connection writes each piece with sendall(), so
a slow client stalls the generator and the file is only read as fast as
the socket drains:

    file.read(chunk) ──► compressor ──► iter_bytes() ──► sock.sendall()
          ▲                                                    │
          └────────────── pulled only when the socket accepts ─┘

=============================================================================
BODY FRAMING
=============================================================================

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │  Response                    │  Framing                             │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │  fixed body                  │  Content-Length: len(body)           │
    │  stream + Content-Length set │  raw bytes, length known upfront     │
    │  stream, HTTP/1.1 client     │  Transfer-Encoding: chunked          │
    │  stream, HTTP/1.0 client     │  Connection: close, read until EOF   │
    │  304 / 204                   │  no body, no Content-Length          │
    └──────────────────────────────┴──────────────────────────────────────┘

Compressed file bodies have no length until the compressor is done, so
they are the ones that end up chunked.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, Optional, Union

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "staticserver/1.0"


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be written.

    ``stream`` wins over ``body`` when both are set.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    stream: Optional[Iterable[bytes]] = field(default=None, repr=False)
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_length(self) -> Optional[int]:
        """
        Body size if it is known before sending, else None.

        Used by the access log; a chunked response logs "-".
        """
        if self.stream is None:
            return len(self.body) if self.status.allows_body else 0
        value = self.headers.get("Content-Length")
        return int(value) if value is not None else None

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def is_close_delimited(self, allow_chunked: bool = True) -> bool:
        """
        True when the body can only be terminated by closing the socket.

        That is a stream of unknown length sent to a client that cannot
        take chunked transfer-coding (HTTP/1.0).
        """
        return (
            self.stream is not None
            and self.status.allows_body
            and "Content-Length" not in self.headers
            and not allow_chunked
        )

    def close(self) -> None:
        """
        Release the body stream.

        Closing a generator runs its ``finally``/``with`` blocks, which is
        what closes the underlying file when a client goes away early.
        """
        close = getattr(self.stream, "close", None)
        if close is not None:
            close()

    def iter_bytes(
        self,
        server_name: str = DEFAULT_SERVER_NAME,
        include_body: bool = True,
        allow_chunked: bool = True,
    ) -> Iterator[bytes]:
        """
        Serialize the response as a sequence of byte strings.

        The first item is always the status line plus headers.

        Args:
            server_name: Value for the Server header.
            include_body: False for HEAD requests.
            allow_chunked: False when the client spoke HTTP/1.0.
        """
        headers = dict(self.headers)
        has_body = self.status.allows_body
        chunked = False

        if has_body:
            if self.stream is None:
                headers.setdefault("Content-Length", str(len(self.body)))
            elif "Content-Length" not in headers:
                if allow_chunked:
                    headers["Transfer-Encoding"] = "chunked"
                    chunked = True
                else:
                    headers["Connection"] = "close"

        headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        yield ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")

        if not (has_body and include_body):
            self.close()
            return

        if self.stream is None:
            if self.body:
                yield self.body
            return

        try:
            for chunk in self.stream:
                if not chunk:
                    continue
                if chunked:
                    yield b"%x\r\n" % len(chunk) + chunk + b"\r\n"
                else:
                    yield chunk
            if chunked:
                yield b"0\r\n\r\n"
        finally:
            self.close()

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """Whole response in one buffer. Drains the stream, if any."""
        return b"".join(self.iter_bytes(server_name))


class ResponseBuilder:
    """
    Fluent construction of HTTPResponse objects.

        response = (ResponseBuilder()
            .status(HTTPStatus.PARTIAL_CONTENT)
            .header("Accept-Range", "bytes")
            .stream(chunks, length=11)
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._stream: Optional[Iterable[bytes]] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: str, content_type: str = "text/html") -> "ResponseBuilder":
        self._body = html.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def stream(self, chunks: Iterable[bytes], length: Optional[int] = None) -> "ResponseBuilder":
        """
        Use a lazily produced body.

        Args:
            chunks: Iterable of byte strings, consumed while sending.
            length: Total size if known; sets Content-Length so the body
                    is sent unframed. Leave None for compressed bodies.
        """
        self._stream = chunks
        if length is not None:
            self._headers["Content-Length"] = str(length)
        return self

    def close_connection(self) -> "ResponseBuilder":
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
            stream=self._stream,
        )


# =============================================================================
# HTTP DATES
# =============================================================================

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an IMF-fixdate (RFC 7231 section 7.1.1.1).

        >>> format_http_date(datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc))
        'Thu, 15 Jan 2026 12:30:45 GMT'

    Aware datetimes are converted to UTC first; naive ones are taken as
    UTC already. The output is also the input of the ETag hash, so it must
    stay byte-for-byte stable.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
