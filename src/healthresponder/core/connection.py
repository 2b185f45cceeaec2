"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the bounded reads this server
needs. The connection handler decides WHAT to do; this module makes sure
each step can only take so long and read so much.

=============================================================================
TWO KINDS OF TIMEOUT
=============================================================================

A socket timeout bounds ONE recv() call. A slow-loris client can defeat
that easily: send one byte every 4 seconds and no single recv() ever
times out, while the worker is tied up forever.

So every multi-call read loop also tracks a wall-clock DEADLINE:

    deadline = now + 5s
    while not done:
        remaining = deadline - now
        if remaining <= 0: give up
        sock.settimeout(min(io_timeout, remaining))
        sock.recv(...)

    ┌──────────────────────────────────────────────────────────────────┐
    │  t=0        t=4         t=8         t=12                          │
    │  │ 1 byte   │ 1 byte    │ 1 byte    │        ← per-call: never   │
    │  │          │           │           │          fires            │
    │  ├──────────────────────┤                                         │
    │          deadline=5s ───┘ ← fires here, 408                       │
    └──────────────────────────────────────────────────────────────────┘

Header and body reads each get their own deadline.

=============================================================================
FINDING THE END OF THE HEADERS
=============================================================================

TCP is a byte stream; "\\r\\n\\r\\n" can be split across two recv() calls.
After each read we scan only the new bytes plus the 3 bytes before them,
which is the only place a terminator we have not already looked at can be:

    buffer: ........ GET / HTTP/1.1\\r\\n\\r      ← old bytes
    chunk:                             \\n       ← new byte
    scan:                         \\r\\n\\r\\n    ← old[-3:] + new

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Type
import uuid

from ..config import MAX_HEADER_SIZE
from ..errors import (
    BodyTimeout,
    HeaderTimeout,
    HeaderTooLarge,
    RequestError,
    UnexpectedEof,
)
from ..http.request import HEADER_TERMINATOR


logger = logging.getLogger(__name__)

BODY_CHUNK_SIZE = 4096
MAX_LINGER_BYTES = 64 * 1024


class ConnectionState(Enum):
    """
    Where a connection is in its (single request) life.
    """
    READING_HEADERS = "reading_headers"  # Just accepted
    VALIDATING = "validating"
    READING_BODY = "reading_body"
    DISPATCHING = "dispatching"
    RESPONDING = "responding"
    CLOSED = "closed"                # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple as returned by accept().
        id: Short identifier for debug logs.
        state: Current state.
        io_timeout: Socket timeout for every single recv()/sendall().
        linger_timeout: Upper bound on the drain done by close().
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.READING_HEADERS
    bytes_received: int = 0

    # Configuration (passed from ServerConfig)
    io_timeout: float = 5.0
    linger_timeout: float = 0.5
    recv_size: int = 1024

    def __post_init__(self):
        # Blocking mode with a timeout; deadlines are layered on top
        self.socket.settimeout(self.io_timeout)

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    @property
    def peer_address(self) -> str:
        """
        Socket peer as "ip:port" ("[ip]:port" for IPv6).

        Unix-domain and unknown peers come back as "unknown".
        """
        if not isinstance(self.address, tuple) or len(self.address) < 2 or not self.address[0]:
            return "unknown"
        host, port = self.address[0], self.address[1]
        if ":" in host:
            return f"[{host}]:{port}"
        return f"{host}:{port}"

    # =========================================================================
    # READING
    # =========================================================================

    def read_header_block(
        self,
        max_size: int = MAX_HEADER_SIZE,
        timeout: float = 5.0,
    ) -> tuple[bytes, bytes]:
        """
        Read until the blank line that ends the headers.

        Args:
            max_size: Largest header block accepted, terminator included.
            timeout: Wall-clock budget for the whole loop.

        Returns:
            (header_block, leftover). header_block ends with \\r\\n\\r\\n;
            leftover holds body bytes that arrived in the same read.

        Raises:
            HeaderTimeout: The deadline passed.
            HeaderTooLarge: max_size bytes read without a terminator.
            UnexpectedEof: The peer closed before the terminator.
        """
        self.state = ConnectionState.READING_HEADERS
        deadline = time.monotonic() + timeout
        buffer = bytearray()

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise HeaderTimeout("Header read timeout")

            room = max_size - len(buffer)
            chunk = self._recv(min(self.recv_size, room), remaining, HeaderTimeout)
            if not chunk:
                raise UnexpectedEof("Connection closed before end of headers")

            scan_from = max(0, len(buffer) - (len(HEADER_TERMINATOR) - 1))
            buffer += chunk

            end = buffer.find(HEADER_TERMINATOR, scan_from)
            if end != -1:
                end += len(HEADER_TERMINATOR)
                return bytes(buffer[:end]), bytes(buffer[end:])

            if len(buffer) >= max_size:
                raise HeaderTooLarge(f"Header block exceeds {max_size} bytes")

    def drain_body(self, length: int, already_read: int = 0, timeout: float = 5.0) -> int:
        """
        Read and discard exactly `length` body bytes.

        Args:
            length: Declared Content-Length.
            already_read: Body bytes that came in with the headers.
            timeout: Wall-clock budget for the whole body.

        Returns:
            Number of bytes read from the socket.

        Raises:
            BodyTimeout: The deadline passed.
            UnexpectedEof: The peer closed before the body was complete.
        """
        self.state = ConnectionState.READING_BODY
        deadline = time.monotonic() + timeout
        remaining_bytes = max(0, length - already_read)
        total = 0

        while remaining_bytes > 0:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise BodyTimeout("Body read timeout")

            chunk = self._recv(min(BODY_CHUNK_SIZE, remaining_bytes), remaining, BodyTimeout)
            if not chunk:
                raise UnexpectedEof("Connection closed before full body was received")

            remaining_bytes -= len(chunk)
            total += len(chunk)

        return total

    def _recv(self, size: int, remaining: float, timeout_error: Type[RequestError]) -> bytes:
        """
        One bounded recv().

        Returns:
            Received bytes, or b"" if the peer closed, reset or aborted.
        """
        self.socket.settimeout(min(self.io_timeout, remaining))
        try:
            data = self.socket.recv(size)
        except socket.timeout:
            raise timeout_error(f"[{self.id}] read timed out") from None
        except ConnectionError:
            return b""

        self.bytes_received += len(data)
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Send a whole response, best effort.

        Returns:
            True if everything was handed to the kernel, False if the
            write failed. Failures are never retried; the connection is
            being torn down either way.
        """
        self.state = ConnectionState.RESPONDING
        self.socket.settimeout(self.io_timeout)
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully. Idempotent.

        1. shutdown(SHUT_WR): send FIN, the client sees end-of-response.
        2. Drain what the client still has in flight (bounded by
           linger_timeout and MAX_LINGER_BYTES). Closing with unread
           data makes the kernel send RST, which can destroy the
           response before the client reads it.
        3. close(): release the descriptor.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        deadline = time.monotonic() + self.linger_timeout
        drained = 0
        try:
            while drained < MAX_LINGER_BYTES:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(BODY_CHUNK_SIZE)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass  # Timeout or reset, we're closing anyway

        self._release()

    def abort(self):
        """Close immediately, no FIN handshake and no drain."""
        if self.state == ConnectionState.CLOSED:
            return
        self._release()

    def _release(self):
        try:
            self.socket.close()
        except OSError:
            pass
        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
