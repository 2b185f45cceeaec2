"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Runs the whole life of one connection inside a worker thread.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     Per-connection state machine                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   READING_HEADERS ── timeout ─────────────────────────► 408          │
    │        │          ── 8 KiB, no blank line ────────────► 431          │
    │        │          ── peer closed ─────────────────────► (close)      │
    │        ▼                                                             │
    │   VALIDATING ────── Transfer-Encoding: chunked ───────► 501          │
    │        │     ────── Content-Length twice / garbage ───► 431          │
    │        │     ────── Content-Length > 1 MiB ───────────► 413          │
    │        │                                                             │
    │        ├──► one access log line (non-blocking)                       │
    │        ▼                                                             │
    │   DISPATCHING ───── not GET/HEAD ─────────────────────► 501          │
    │        │      ───── GET|HEAD /  ──────────────────────► 200 "OK"     │
    │        │      ───── GET|HEAD /favicon.ico ────────────► 200 png      │
    │        │      ───── HEAD elsewhere ───────────────────► 404          │
    │        ▼                                                             │
    │   READING_BODY  (GET elsewhere only: drain, never inspect)           │
    │        │      ───── timeout ──────────────────────────► 408          │
    │        │      ───── peer closed ──────────────────────► (close)      │
    │        ▼                                                             │
    │   RESPONDING ────── 404 ──► CLOSED                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every path ends in CLOSED, exactly once, through the `with conn:` block.

=============================================================================
"""

import logging
from typing import Optional

from ..config import ServerConfig
from ..errors import (
    RequestError,
    RouteNotFound,
    UnsupportedMethod,
    UnsupportedTransferEncoding,
)
from ..handlers import build_routes
from ..http.request import (
    ParsedRequest,
    RequestParser,
    decode_header_block,
    has_chunked_transfer_encoding,
)
from ..http.response import HTTPResponse, error
from ..http.status_codes import HTTPStatus
from ..logsink import LogEntry, LogSink
from .connection import Connection, ConnectionState


logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "HEAD")


class ConnectionHandler:
    """
    Handles one connection from first byte to close.

    Stateless between calls, so a single instance is shared by every
    worker thread.

    Usage:
        handler = ConnectionHandler(config, sink)
        status = handler.handle(conn)   # HTTPStatus written, or None
    """

    def __init__(self, config: Optional[ServerConfig] = None, sink: Optional[LogSink] = None):
        self.config = config or ServerConfig()
        self.sink = sink
        self.routes = build_routes(show_favicon=self.config.show_favicon)
        self._parser = RequestParser(max_body_size=self.config.max_body_size)

    def handle(self, conn: Connection) -> Optional[HTTPStatus]:
        """
        Serve one request and close the connection.

        Per-connection errors are answered here and never escape. Any
        other exception propagates to the worker, after the connection
        has been closed.

        Returns:
            The status that was sent, or None if nothing could be sent.
        """
        with conn:
            try:
                response, is_head = self._process(conn)
            except RequestError as e:
                logger.debug(f"[{conn.id}] {conn.peer_address} rejected: {type(e).__name__}: {e}")
                if e.status is None:
                    return None
                response, is_head = error(e.status), False

            conn.send(response.to_bytes(include_body=not is_head))
            return response.status

    def _process(self, conn: Connection) -> tuple[HTTPResponse, bool]:
        """Run the state machine up to the response. Raises RequestError."""
        header_block, leftover = conn.read_header_block(
            max_size=self.config.max_header_size,
            timeout=self.config.header_timeout,
        )

        # ─────────────────────────────────────────────────────────────
        # VALIDATE
        # ─────────────────────────────────────────────────────────────
        conn.state = ConnectionState.VALIDATING

        lines = decode_header_block(header_block)
        if has_chunked_transfer_encoding(lines[1:]):
            raise UnsupportedTransferEncoding("Chunked requests are not supported")

        request = self._parser.parse_lines(lines, len(header_block))
        self._log_request(conn, request)

        # ─────────────────────────────────────────────────────────────
        # DISPATCH
        # ─────────────────────────────────────────────────────────────
        conn.state = ConnectionState.DISPATCHING

        if request.method not in SUPPORTED_METHODS:
            raise UnsupportedMethod(f"Method {request.method!r} not supported")

        is_head = request.method == "HEAD"
        route = self.routes.get(request.path)
        if route is not None:
            return route(), is_head

        if is_head:
            raise RouteNotFound(request.path)

        # GET to an unknown path: read the body off the wire first so a
        # slow or truncated upload is reported as such, not as a 404
        if request.content_length > 0:
            conn.drain_body(
                request.content_length,
                already_read=len(leftover),
                timeout=self.config.body_timeout,
            )
        raise RouteNotFound(request.path)

    def _log_request(self, conn: Connection, request: ParsedRequest) -> None:
        """Submit the one access log line for this connection."""
        if self.sink is None:
            return
        entry = LogEntry.create(
            peer=client_address(conn, request),
            request_line=request.request_line,
            byte_count=request.header_size + request.content_length,
        )
        self.sink.submit_entry(entry)


def client_address(conn: Connection, request: ParsedRequest) -> str:
    """
    The address to log for this request.

    Prefers the first entry of X-Forwarded-For (the original client when
    running behind a proxy) and falls back to the socket peer. The value
    is client-controlled; LogEntry sanitizes it.
    """
    forwarded = request.get_header("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",", 1)[0].strip()
        if first:
            return first
    return conn.peer_address
