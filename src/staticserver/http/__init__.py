"""
HTTP building blocks.

    request.py       bytes → HTTPRequest
    response.py      HTTPResponse → bytes (fixed or streamed body)
    caching.py       ETag / Last-Modified, conditional requests
    ranges.py        Range header → byte window
    encoding.py      Accept-Encoding → gzip / deflate / identity
    status_codes.py  HTTPStatus and reason phrases
    mime_types.py    file extension → media type
"""

from .caching import CacheCheck, CacheValidator, FileMetadata, compute_etag
from .encoding import EncodingChoice, EncodingNegotiator, compress_stream
from .mime_types import get_content_type, get_mime_type
from .ranges import ByteRange, RangeSelector, parse_range
from .request import HTTPParseError, HTTPRequest, RequestParser, parse_request
from .response import HTTPResponse, ResponseBuilder, format_http_date
from .status_codes import HTTPStatus, get_phrase

__all__ = [
    "ByteRange",
    "CacheCheck",
    "CacheValidator",
    "EncodingChoice",
    "EncodingNegotiator",
    "FileMetadata",
    "HTTPParseError",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "RangeSelector",
    "RequestParser",
    "ResponseBuilder",
    "compress_stream",
    "compute_etag",
    "format_http_date",
    "get_content_type",
    "get_mime_type",
    "get_phrase",
    "parse_range",
    "parse_request",
]
