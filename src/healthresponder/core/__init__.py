"""
=============================================================================
CORE: SOCKETS, WORKERS, DISPATCH
=============================================================================

    core/
    ├── socket_server.py  # Listening socket + accept loop
    ├── dispatcher.py     # Round-robin, drop-on-full assignment
    ├── thread_pool.py    # Fixed workers, one bounded queue each
    ├── handler.py        # Per-connection state machine
    └── connection.py     # Deadline-bounded socket wrapper

Flow of one connection:

    SocketServer.accept()
        └──► Dispatcher.dispatch(conn)
                └──► Worker.queue (bounded, private)
                        └──► Worker.run() ──► ConnectionHandler.handle(conn)

=============================================================================
"""

from .connection import Connection, ConnectionState
from .handler import ConnectionHandler
from .thread_pool import Worker, WorkerPool, WorkerState
from .dispatcher import Dispatcher, DispatchOutcome
from .socket_server import SocketServer

__all__ = [
    "Connection",
    "ConnectionState",
    "ConnectionHandler",
    "Worker",
    "WorkerPool",
    "WorkerState",
    "Dispatcher",
    "DispatchOutcome",
    "SocketServer",
]
