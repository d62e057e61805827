"""
Transport layer: the listening socket, per-client connections and the
worker threads that serve them.
"""

from .connection import Connection, ConnectionState, RequestTooLarge
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = [
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "SocketServer",
    "ThreadPool",
]
