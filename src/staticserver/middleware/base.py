"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting behaviour wrapped around the file handler.

    request ──► Logging ──► ... ──► StaticFileHandler.handle
                   │                          │
    response ◄─────┴──────────────────────────┘

A middleware is a callable taking the request and the next handler in
the chain. It may look at the request, call ``next`` (or not), and look
at or change the response on the way back:

    class ServerHeader(Middleware):
        def __call__(self, request, next):
            response = next(request)
            response.set_header("X-Served-By", "edge-1")
            return response

The response that travels back up the chain still has its body stream
unread. Middleware that needs the body length should use
``response.content_length``, which is None for chunked bodies.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Handle ``request``, normally by delegating to ``next``."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered list of middleware; the first one added is the outermost.

        pipeline = MiddlewarePipeline().add(LoggingMiddleware())
        app = pipeline.wrap(handler.handle)
        response = app(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug("Added middleware: %s", middleware.name)
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around ``handler``.

        Wrapping runs back to front so that [A, B] yields A(B(handler)).
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = _bind(middleware, current)
        return current

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)


def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
    def wrapped(request: HTTPRequest) -> HTTPResponse:
        return middleware(request, next_handler)
    return wrapped


class FunctionMiddleware(Middleware):
    """Adapts a plain ``(request, next) -> response`` function."""

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None,
    ):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def middleware(func: Callable[[HTTPRequest, NextHandler], HTTPResponse]) -> FunctionMiddleware:
    """Decorator form of FunctionMiddleware."""
    return FunctionMiddleware(func)
