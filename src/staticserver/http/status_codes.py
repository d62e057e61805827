"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes a file server actually emits, with their reason phrases.

    ┌──────────┬───────────────────────────────────────────────────────────┐
    │  Code    │  When the file server sends it                            │
    ├──────────┼───────────────────────────────────────────────────────────┤
    │  200     │  Full file body or a directory listing                    │
    │  206     │  A Range header was present: partial body                 │
    │  304     │  If-None-Match / If-Modified-Since matched the validators │
    │  400     │  Request line could not be parsed                         │
    │  404     │  Path missing, outside the root, or /favicon.ico          │
    │  405     │  Unknown request method                                   │
    │  500     │  Listing template unavailable or handler crashed          │
    │  503     │  Worker pool saturated                                    │
    └──────────┴───────────────────────────────────────────────────────────┘

The reason phrase doubles as the body of error responses (see
handlers/errors.py), so the table below is the single source for both the
status line and the error page text.

=============================================================================
"""

from enum import IntEnum
from typing import Union


class HTTPStatus(IntEnum):
    """
    HTTP status codes with reason phrases.

    IntEnum so a status compares equal to its integer:

        >>> HTTPStatus.PARTIAL_CONTENT == 206
        True
        >>> HTTPStatus.NOT_MODIFIED.phrase
        'Not Modified'
    """

    # 2xx
    OK = 200
    NO_CONTENT = 204
    PARTIAL_CONTENT = 206

    # 3xx
    MOVED_PERMANENTLY = 301
    FOUND = 302
    NOT_MODIFIED = 304

    # 4xx
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    RANGE_NOT_SATISFIABLE = 416

    # 5xx
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line and for error bodies.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      └── phrase
                      └───────── code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """4xx or 5xx; used by the access log to pick a log level."""
        return self >= 400

    @property
    def allows_body(self) -> bool:
        """
        Whether a response with this status may carry a body.

        RFC 7230 section 3.3: 1xx, 204 and 304 responses never have one.
        """
        return not (100 <= self < 200 or self in (204, 304))


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.PARTIAL_CONTENT: "Partial Content",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.URI_TOO_LONG: "URI Too Long",
    HTTPStatus.RANGE_NOT_SATISFIABLE: "Range Not Satisfiable",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}


def get_phrase(code: int) -> str:
    """``404`` → ``"Not Found"``; codes outside the table → ``"Unknown"``."""
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Unknown"


class UnknownStatus(int):
    """
    A code HTTPStatus has no member for, e.g. 418.

    Quacks like an HTTPStatus as far as responses are concerned.
    """

    @property
    def phrase(self) -> str:
        return "Unknown"

    @property
    def allows_body(self) -> bool:
        return not (100 <= self < 200 or self in (204, 304))


def to_status(code: int) -> Union[HTTPStatus, UnknownStatus]:
    try:
        return HTTPStatus(int(code))
    except ValueError:
        return UnknownStatus(int(code))
