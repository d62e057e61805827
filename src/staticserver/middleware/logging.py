"""
=============================================================================
ACCESS LOG
=============================================================================

One line per request on the "staticserver.access" logger.

    text:
    127.0.0.1 - - [19/Oct/2026:10:04:12 +0000] "GET /video.mp4" 206 1048576 0.41ms
    127.0.0.1 - - [19/Oct/2026:10:04:13 +0000] "GET /app.js" 200 - 0.38ms

    json:
    {"request_id": "1f0c9a2e", "method": "GET", "path": "/app.js",
     "status_code": 200, "content_length": null, ...}

The size column is "-" (null in JSON) when the body is compressed and
chunked, because its length is not known until it has been sent. The
duration covers resolving, stat and header construction; the body is
streamed afterwards and is not included.

Route the access log separately from the rest of the server with:

    logging.getLogger("staticserver.access").addHandler(file_handler)

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("staticserver.access")


@dataclass
class RequestLog:
    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: Optional[int]
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        size = "-" if self.content_length is None else str(self.content_length)
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f"{size} {self.duration_ms:.2f}ms"
        )


class LoggingMiddleware(Middleware):
    """
    Times each request and writes an access log line.

    Args:
        log_format: "text" (combined-log style) or "json".
        include_request_id: Echo the generated id as X-Request-ID.
        log_level: Level the access lines are logged at.
        skip_paths: Exact paths that are not logged.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = False,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        if log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        start = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            logger.error(
                "Request failed: %s %s - %s: %s (%.2fms)",
                request.method, request.path, type(e).__name__, e,
                (time.perf_counter() - start) * 1000,
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path not in self.skip_paths:
            self._emit(RequestLog(
                request_id=request_id,
                method=request.method,
                path=request.path,
                query=request.query,
                client_ip=request.client_address[0],
                user_agent=request.user_agent or "-",
                status_code=int(response.status),
                content_length=response.content_length,
                duration_ms=duration_ms,
                timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
            ))
        return response

    def _emit(self, entry: RequestLog) -> None:
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
