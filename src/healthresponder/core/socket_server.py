"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

The listening socket and the accept loop. It knows nothing about HTTP:
every accepted socket is wrapped in a Connection and handed to a
callback (the Dispatcher) which must return quickly.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create the listening socket
    2. bind()      Associate it with HOST:PORT     ← only fatal error
    3. listen()    Let the kernel queue handshakes (backlog)
    4. accept()    Loop: one new socket per client
    5. close()     On shutdown

SOCKET OPTIONS:
───────────────

    SO_REUSEADDR   Restart without "Address already in use" (TIME_WAIT)
    TCP_NODELAY    Responses are tiny; don't let Nagle sit on them

The listening socket has a 1 second timeout so the loop can notice
shutdown() without a connection arriving.

=============================================================================
SIGNALS
=============================================================================

SIGINT / SIGTERM stop the accept loop. Handlers can only be installed
from the main thread; when the server runs in a background thread (tests)
they are skipped and shutdown() is the only way out.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        server = SocketServer(config)
        server.start(dispatcher.dispatch)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening; tests wait on it
        self._ready_event = threading.Event()
        self._original_handlers: dict = {}
        self._bound_address: Optional[Tuple[str, int]] = None

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound (IP, port).

        With port 0 this is where the OS-assigned port shows up.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, shutting down...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], object]):
        """
        Bind, listen and run the accept loop. BLOCKS until shutdown().

        Args:
            connection_handler: Receives every accepted Connection. Must
                                not block (see Dispatcher).

        Raises:
            OSError: If the address cannot be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()
        self._ready_event.set()

        logger.info(f"Listening on {self.address[0]}:{self.address[1]}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], object]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                # Normal: lets us re-check self._running once a second
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            conn = Connection(
                socket=client_socket,
                address=client_address,
                io_timeout=self.config.io_timeout,
                linger_timeout=self.config.linger_timeout,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop the accept loop. Safe to call from any thread, and twice."""
        self._running = False

    def _cleanup(self):
        self._restore_signals()
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self._running = False
        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)
