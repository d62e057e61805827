"""
=============================================================================
CONNECTION
=============================================================================

One accepted client socket, wrapped with buffered request reading and
streamed response writing.

=============================================================================
READING: TCP HAS NO MESSAGE BOUNDARIES
=============================================================================

recv() returns whatever the kernel happens to have. A request may arrive
in several pieces, or two pipelined requests may arrive in one:

    recv() → b"GET /a.txt HT"
    recv() → b"TP/1.1\\r\\nHost: x\\r\\n\\r\\nGET /b.txt HTTP/1.1\\r\\n..."
                                        ▲
                                        └── end of request 1

read_request() buffers until it has seen the blank line that ends the
headers, then reads Content-Length more bytes, hands back exactly one
request and keeps the rest for the next call.

=============================================================================
WRITING: STREAMED BODIES
=============================================================================

Files are never loaded whole. send_stream() takes the iterator produced
by HTTPResponse.iter_bytes() and writes it piece by piece with sendall():

    for piece in response.iter_bytes():
        sock.sendall(piece)          ← blocks while the client is slow

Because the next piece is only produced after sendall() returns, the
file is read at the speed the client drains it. If the client goes away
mid-body the generator is closed, which closes the file it was reading.

=============================================================================
KEEP-ALIVE
=============================================================================

    first request:       timeout        (30 s default)
    later requests:      keep_alive_timeout  (5 s default)

A keep-alive timeout is the normal end of a persistent connection and
returns None. A timeout before the first request is an error.

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLarge(ValueError):
    """The buffered request grew past max_request_size."""


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client (ip, port).
        id: Short random id used to correlate log lines.
        requests_handled: Requests read so far on this connection.
        bytes_sent: Bytes written so far, headers included.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0
    bytes_sent: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request (headers plus Content-Length body).

        Returns:
            The request bytes, or None if the client closed the connection
            or an idle keep-alive connection timed out.

        Raises:
            TimeoutError: The first request did not arrive in time.
            RequestTooLarge: The request exceeded max_request_size.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                self._check_size()

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break
                self._buffer += chunk
                self._check_size()

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.last_activity = time.time()
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug("[%s] Keep-alive timeout", self.id)
                return None
            raise TimeoutError("Request read timeout")

        finally:
            if self.state != ConnectionState.CLOSED:
                self.socket.settimeout(self.timeout)

    def _check_size(self) -> None:
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")

    def _recv(self) -> bytes:
        try:
            data = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""
        self.last_activity = time.time()
        return data

    @staticmethod
    def _parse_content_length(header_section: bytes) -> int:
        """Content-Length from raw header bytes, 0 when absent or garbage."""
        for line in header_section.decode("latin-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                value = line.split(":", 1)[1].strip()
                return int(value) if value.isdigit() else 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_stream(self, pieces: Iterable[bytes]) -> bool:
        """
        Write ``pieces`` one at a time, in order.

        The iterable is closed whether or not the write completes, so a
        generator that holds an open file releases it even when the client
        disconnects halfway through.

        Returns:
            True if every piece was written, False if the client is gone.
        """
        self.state = ConnectionState.WRITING
        iterator = iter(pieces)
        try:
            for piece in iterator:
                self.socket.sendall(piece)
                self.bytes_sent += len(piece)
                self.last_activity = time.time()
            return True
        except (ConnectionResetError, BrokenPipeError, socket.timeout) as e:
            logger.info("[%s] Client went away during send: %s", self.id, e)
            return False
        except OSError as e:
            logger.warning("[%s] Send failed: %s", self.id, e)
            return False
        finally:
            close = getattr(iterator, "close", None)
            if close is not None:
                close()

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Shut down the write side, drain what the client still sends, close.

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            logger.debug("[%s] shutdown() on a dead socket", self.id)

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            logger.debug("[%s] Drain interrupted", self.id)

        self.socket.close()
        self.state = ConnectionState.CLOSED
        logger.debug(
            "[%s] Connection closed after %d requests, %d bytes sent",
            self.id, self.requests_handled, self.bytes_sent,
        )

    def set_keep_alive(self) -> None:
        self.state = ConnectionState.KEEP_ALIVE

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
