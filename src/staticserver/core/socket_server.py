"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket and hands every accepted client to a callback.

    socket() → setsockopt() → bind() → listen() → accept() loop
                                                      │
                                                      ▼
                                      connection_handler(Connection)

The callback must return quickly; the HTTP layer passes the connection
to the worker pool and goes straight back to accept().

Socket options:

    SO_REUSEADDR   restart on the same port without waiting out TIME_WAIT
    TCP_NODELAY    headers go out without waiting for Nagle coalescing
    timeout 1.0 s  accept() wakes up regularly to notice shutdown()

Port 0 asks the kernel for any free port; bound_address reports the port
it picked. Tests rely on this.

SIGINT and SIGTERM trigger shutdown() when the listener runs on the main
thread. Python only delivers signals to the main thread, so a listener
started from any other thread leaves signal handling alone.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Usage:
        server = SocketServer(config)
        server.start(handle_connection)   # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready = threading.Event()
        self._stopped = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def bound_address(self) -> Tuple[str, int]:
        """Actual (host, port) once bound; the configured pair before that."""
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return host, port
        return self.config.host, self.config.port

    def _create_socket(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(1.0)
        return sock

    def bind(self) -> Tuple[str, int]:
        """
        Create, bind and listen. Separate from start() so callers can learn
        the port before the accept loop begins.

        Raises:
            OSError: The address is taken or not ours to bind.
        """
        if self._socket is not None:
            return self.bound_address

        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error("Failed to bind to %s:%s: %s", self.config.host, self.config.port, e)
            raise
        self._socket = sock
        return self.bound_address

    def _setup_signals(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info("Received %s, shutting down", signal.Signals(signum).name)
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]) -> None:
        """Bind if needed and accept until shutdown(). Blocks."""
        self.bind()
        self._running = True
        self._stopped.clear()
        self._setup_signals()

        host, port = self.bound_address
        logger.info("Listening on %s:%d", host, port)
        self._ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]) -> None:
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error("Accept error: %s", e)
                break

            logger.debug("Accepted connection from %s:%s", client_address[0], client_address[1])
            conn = Connection(
                socket=client_socket,
                address=client_address[:2],
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self) -> None:
        """Ask the accept loop to stop. Idempotent and thread-safe."""
        if self._running:
            logger.info("Stopping listener")
        self._running = False

    def _cleanup(self) -> None:
        self._restore_signals()
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        self._ready.clear()
        self._stopped.set()
        logger.info("Listener stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop is running."""
        return self._ready.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket has been closed."""
        return self._stopped.wait(timeout)
