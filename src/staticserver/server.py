"""
=============================================================================
STATIC FILE SERVER
=============================================================================

Wires the pieces together:

    ┌──────────────┐  Connection   ┌────────────┐
    │ SocketServer │ ────────────► │ ThreadPool │
    └──────────────┘               └─────┬──────┘
                                         │  worker thread, one connection
                                         ▼
                          ┌─────────────────────────────┐
                          │ read_request()              │◄──┐
                          │ RequestParser.parse()       │   │
                          │ MiddlewarePipeline          │   │ keep-alive
                          │   └─ StaticFileHandler      │   │
                          │ send_stream(iter_bytes())   │───┘
                          └─────────────────────────────┘

Nothing happens on import or construction beyond compiling the listing
template; the listening socket is opened by bind() or start(), and
start() blocks until stop() or SIGINT/SIGTERM.

    server = StaticServer(ServerConfig(root="./public", port=8000))
    server.start()

=============================================================================
RESPONSE FRAMING AND KEEP-ALIVE
=============================================================================

    client      body                     framing             connection
    ────────    ─────────────────────    ─────────────────   ───────────
    HTTP/1.1    fixed / identity file    Content-Length      kept open
    HTTP/1.1    compressed file          chunked             kept open
    HTTP/1.0    fixed / identity file    Content-Length      per request
    HTTP/1.0    compressed file          until close         closed

=============================================================================
"""

import logging
from typing import Callable, Optional, Tuple

from .config import ServerConfig
from .core import Connection, SocketServer, ThreadPool
from .core.connection import RequestTooLarge
from .handlers import ErrorResponder, StaticFileHandler, compile_template
from .handlers.listing import ListingTemplate
from .http import HTTPParseError, HTTPRequest, HTTPResponse, HTTPStatus, RequestParser
from .middleware import LoggingMiddleware, Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup for the command line; a no-op if already configured."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    logging.getLogger("staticserver").setLevel(numeric)


class StaticServer:
    """
    HTTP/1.1 static file server.

    Args:
        config: Server settings; defaults to ServerConfig().
        template: Listing template to use instead of compiling
                  ``config.template_path``. Mostly for tests.
        access_log: Install LoggingMiddleware.
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        template: Optional[ListingTemplate] = None,
        access_log: bool = True,
    ):
        self.config = config or ServerConfig()
        self.config.validate()

        if template is None:
            template = compile_template(self.config.template_path)

        self.handler = StaticFileHandler(
            root=self.config.root,
            template=template,
            chunk_size=self.config.chunk_size,
            cache_max_age=self.config.cache_max_age,
        )
        self.errors = ErrorResponder()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._middleware = MiddlewarePipeline()
        if access_log:
            self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))

        self._app: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._running = False

    def use(self, middleware: Middleware) -> "StaticServer":
        """Add middleware inside the ones already installed."""
        self._middleware.add(middleware)
        return self

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.bound_address

    @property
    def is_running(self) -> bool:
        return self._running

    def bind(self) -> Tuple[str, int]:
        """Open the listening socket now; returns the bound (host, port)."""
        return self._socket_server.bind()

    def start(self) -> None:
        """Serve until stop() is called or a shutdown signal arrives."""
        host, port = self.bind()
        self._app = self._middleware.wrap(self.handler.handle)
        logger.info(
            "Serving %s on http://%s:%d (%d-%d workers)",
            self.config.root, host, port, self.config.min_workers, self.config.max_workers,
        )
        if self.handler.template is None:
            logger.warning("No listing template; directory requests will fail with 500")

        try:
            self._thread_pool.start()
            self._running = True
            self._socket_server.start(self._dispatch)
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def stop(self) -> None:
        """Stop accepting; start() returns once in-flight work is done."""
        self._socket_server.shutdown()

    def _shutdown(self) -> None:
        self._running = False
        self._thread_pool.shutdown(wait=True)
        logger.info("Server stopped")

    # =========================================================================
    # PER-CONNECTION WORK
    # =========================================================================

    def _dispatch(self, conn: Connection) -> None:
        """Runs on the accept thread; must not block."""
        if not self._thread_pool.submit(self._serve_connection, args=(conn,)):
            logger.warning("[%s] Worker pool saturated, answering 503", conn.id)
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE)
            conn.close()

    def _serve_connection(self, conn: Connection) -> None:
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
                    break
                except RequestTooLarge:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE)
                    break
                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.info("[%s] Bad request: %s", conn.id, e)
                    self._send_error(conn, e.status_code)
                    break

                if not self._respond(conn, request):
                    break
                conn.set_keep_alive()

    def _respond(self, conn: Connection, request: HTTPRequest) -> bool:
        """
        Produce and send the response for one request.

        Returns:
            True if the connection may be used for another request.
        """
        try:
            response = self._app(request)
        except Exception:
            logger.exception("[%s] Handler failed for %s %s", conn.id, request.method, request.path)
            response = self.errors.respond(HTTPStatus.INTERNAL_SERVER_ERROR)

        allow_chunked = request.version == "HTTP/1.1"
        keep_alive = (
            self.config.keep_alive
            and request.is_keep_alive
            and response.headers.get("Connection", "").lower() != "close"
            and not response.is_close_delimited(allow_chunked)
        )
        if keep_alive:
            response.headers["Connection"] = "keep-alive"
            response.headers["Keep-Alive"] = f"timeout={int(self.config.keep_alive_timeout)}"
        else:
            response.headers["Connection"] = "close"

        pieces = response.iter_bytes(
            self.config.server_name,
            include_body=not request.is_head,
            allow_chunked=allow_chunked,
        )
        try:
            sent = conn.send_stream(pieces)
        except Exception:
            # headers are already out; the only thing left to do is hang up
            logger.exception("[%s] Failed while streaming %s", conn.id, request.path)
            return False
        finally:
            response.close()

        return sent and keep_alive

    def _send_error(self, conn: Connection, status: HTTPStatus) -> None:
        response = self.errors.respond(status, close=True)
        conn.send_stream(response.iter_bytes(self.config.server_name))


def create_server(config: Optional[ServerConfig] = None, **overrides) -> StaticServer:
    """
    Build a StaticServer.

    Keyword arguments override fields of ``config`` (or of the defaults):

        server = create_server(root="./public", port=0)
    """
    if config is None:
        config = ServerConfig(**overrides)
    elif overrides:
        from dataclasses import replace
        config = replace(config, **overrides)
    return StaticServer(config)
