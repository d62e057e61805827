"""
Minimal error responses.

Every error the file server produces looks the same on the wire: the
status line, a plain-text body holding the reason phrase, nothing else.

    HTTP/1.1 404 Not Found
    Content-Type: text/plain; charset=utf-8
    Content-Length: 9

    Not Found
"""

from typing import Union

from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus, to_status


class ErrorResponder:
    def respond(self, status: Union[HTTPStatus, int], close: bool = False) -> HTTPResponse:
        """
        Build the response for ``status``.

        Codes missing from the status table get the phrase "Unknown".

        Args:
            status: HTTPStatus member or bare integer code.
            close: Add "Connection: close".
        """
        status = to_status(status)
        builder = ResponseBuilder().status(status).text(status.phrase)
        if close:
            builder.close_connection()
        return builder.build()


def error_response(status: Union[HTTPStatus, int], close: bool = False) -> HTTPResponse:
    """Shorthand for ``ErrorResponder().respond(status)``."""
    return ErrorResponder().respond(status, close=close)
