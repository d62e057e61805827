"""
Middleware wrapped around the file handler.

    pipeline = MiddlewarePipeline().add(LoggingMiddleware(log_format="json"))
    app = pipeline.wrap(handler.handle)
"""

from .base import FunctionMiddleware, Middleware, MiddlewarePipeline, middleware
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "FunctionMiddleware",
    "LoggingMiddleware",
    "Middleware",
    "MiddlewarePipeline",
    "RequestLog",
    "middleware",
]
