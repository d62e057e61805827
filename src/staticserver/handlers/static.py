"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns one request into exactly one response.

    request.path
        │
        ├─ /favicon.ico ─────────────────────────────────────► 404
        │
        ▼
    PathResolver.resolve() ──── NotFound ────────────────────► 404
        │
        ├─ directory ─► listdir, sort ─► template.render() ──► 200 text/html
        │                                 (no template) ─────► 500
        ▼
    file
        │  Content-Type: <mime>;charset=utf-8
        ▼
    CacheValidator.evaluate() ── matched ────────────────────► 304, no body
        │  Cache-Control, Expires, ETag, Last-Modified
        ▼
    RangeSelector.select() ── Range header present ─► status 206
        │  Accept-Range, Content-Range
        ▼
    EncodingNegotiator.negotiate()
        │  Content-Encoding: gzip | deflate | (none)
        ▼
    FileStream(file, window, chunk_size, encoding) ──────────► 200 / 206

=============================================================================
STREAMING
=============================================================================

The handler opens the file but never reads it. The returned response
carries a FileStream, which the connection pulls from while writing:

    FileStream.__iter__
        seek(start)
        read(chunk_size) ─► [compress] ─► yield      (repeat)
        read the last, short piece ─► [flush] ─► yield

At most one chunk (64 KiB by default) is held in memory per response.
The file is closed when the stream is exhausted, when the client goes
away, or when the response is dropped without being sent (HEAD).

Identity bodies know their length up front and get Content-Length equal
to the window length. Compressed bodies do not; the server frames them
with chunked transfer-coding, or by closing the connection for
HTTP/1.0 clients.

=============================================================================
"""

import logging
from typing import BinaryIO, Iterator, Optional

from ..http.caching import CacheValidator
from ..http.encoding import EncodingChoice, EncodingNegotiator, compress_stream
from ..http.mime_types import get_content_type
from ..http.ranges import ByteRange, RangeSelector
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus
from .errors import ErrorResponder
from .listing import ListingTemplate, list_entries
from .resolver import NotFound, PathResolver, ResolvedPath


logger = logging.getLogger(__name__)

LISTING_CONTENT_TYPE = "text/html"
ALLOWED_METHODS = ("GET", "HEAD")


class FileStream:
    """
    Lazily read body for one byte window of an open file.

    Owns the file object: close() closes it, whether or not iteration
    ever started.
    """

    def __init__(
        self,
        fileobj: BinaryIO,
        byte_range: ByteRange,
        chunk_size: int = 64 * 1024,
        encoding: EncodingChoice = EncodingChoice.IDENTITY,
        compression_level: int = 6,
    ):
        self._file = fileobj
        self.byte_range = byte_range
        self.chunk_size = chunk_size
        self.encoding = encoding
        self.compression_level = compression_level

    def _read_window(self) -> Iterator[bytes]:
        self._file.seek(self.byte_range.start)
        remaining = self.byte_range.length
        while remaining > 0:
            data = self._file.read(min(self.chunk_size, remaining))
            if not data:
                # file shrank since stat()
                name = getattr(self._file, "name", "file")
                logger.warning("%s ended %d bytes early", name, remaining)
                raise OSError(f"{name} ended {remaining} bytes early")
            remaining -= len(data)
            yield data

    def __iter__(self) -> Iterator[bytes]:
        try:
            yield from compress_stream(self._read_window(), self.encoding, self.compression_level)
        finally:
            self.close()

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()

    @property
    def closed(self) -> bool:
        return self._file.closed


class StaticFileHandler:
    """
    Serves a directory tree.

    Args:
        root: Directory being served.
        template: Compiled listing template, or None when it failed to
                  compile (directory requests then get 500).
        chunk_size: Bytes read from disk per body piece.
        cache_max_age: max-age for Cache-Control.
        compression_level: zlib level for gzip/deflate bodies.

    Usage:
        handler = StaticFileHandler("/srv/www", compile_template())
        response = handler.handle(request)
    """

    def __init__(
        self,
        root: str,
        template: Optional[ListingTemplate],
        chunk_size: int = 64 * 1024,
        cache_max_age: int = 60,
        compression_level: int = 6,
    ):
        self.resolver = PathResolver(root)
        self.template = template
        self.chunk_size = chunk_size
        self.compression_level = compression_level

        self.cache = CacheValidator(max_age=cache_max_age)
        self.ranges = RangeSelector()
        self.encodings = EncodingNegotiator(level=compression_level)
        self.errors = ErrorResponder()

    @property
    def root(self) -> str:
        return self.resolver.root

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        if request.method not in ALLOWED_METHODS:
            response = self.errors.respond(HTTPStatus.METHOD_NOT_ALLOWED)
            response.set_header("Allow", ", ".join(ALLOWED_METHODS))
            return response

        try:
            resolved = self.resolver.resolve(request.path)
        except NotFound as e:
            logger.debug("404 %s (%s)", request.path, e.reason)
            return self.errors.respond(HTTPStatus.NOT_FOUND)

        if resolved.is_directory:
            return self._serve_directory(request, resolved)
        return self._serve_file(request, resolved)

    # =========================================================================
    # DIRECTORIES
    # =========================================================================

    def _serve_directory(self, request: HTTPRequest, resolved: ResolvedPath) -> HTTPResponse:
        if self.template is None:
            logger.error("Cannot list %s: no listing template", resolved.absolute_path)
            return self.errors.respond(HTTPStatus.INTERNAL_SERVER_ERROR)

        try:
            entries = list_entries(resolved.absolute_path, request.path)
        except OSError as e:
            logger.debug("listdir(%s) failed: %s", resolved.absolute_path, e)
            return self.errors.respond(HTTPStatus.NOT_FOUND)

        page = self.template.render(resolved.absolute_path, entries)
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .html(page, content_type=LISTING_CONTENT_TYPE)
            .build())

    # =========================================================================
    # FILES
    # =========================================================================

    def _serve_file(self, request: HTTPRequest, resolved: ResolvedPath) -> HTTPResponse:
        headers = {"Content-Type": get_content_type(resolved.absolute_path)}

        check = self.cache.evaluate(request.headers, resolved.metadata, headers)
        if check.matched:
            return ResponseBuilder().status(HTTPStatus.NOT_MODIFIED).headers(headers).build()

        byte_range, partial = self.ranges.select(
            request.get_header("range"), resolved.metadata.size, headers
        )
        encoding = self.encodings.negotiate(request.get_header("accept-encoding"), headers)

        try:
            fileobj = open(resolved.absolute_path, "rb")
        except OSError as e:
            # removed or made unreadable since stat()
            logger.debug("open(%s) failed: %s", resolved.absolute_path, e)
            return self.errors.respond(HTTPStatus.NOT_FOUND)

        stream = FileStream(
            fileobj,
            byte_range,
            chunk_size=self.chunk_size,
            encoding=encoding,
            compression_level=self.compression_level,
        )
        length = byte_range.length if encoding is EncodingChoice.IDENTITY else None
        return (ResponseBuilder()
            .status(HTTPStatus.PARTIAL_CONTENT if partial else HTTPStatus.OK)
            .headers(headers)
            .stream(stream, length=length)
            .build())

