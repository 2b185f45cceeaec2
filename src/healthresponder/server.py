"""
=============================================================================
HEALTH SERVER
=============================================================================

Ties the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │  HealthServer   │                          │
    │                        └────────┬────────┘                          │
    │            ┌──────────────┬─────┴────────┬──────────────┐           │
    │            ▼              ▼              ▼              ▼           │
    │    ┌──────────────┐ ┌───────────┐ ┌────────────┐ ┌───────────┐     │
    │    │ SocketServer │ │Dispatcher │ │ WorkerPool │ │  LogSink  │     │
    │    │ accept loop  │ │round-robin│ │ N workers  │ │ 1 thread  │     │
    │    └──────────────┘ └───────────┘ └─────┬──────┘ └───────────┘     │
    │                                          ▼                          │
    │                                 ┌─────────────────┐                 │
    │                                 │ConnectionHandler│                 │
    │                                 └─────────────────┘                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Threads: 1 accept loop (whoever calls run()), N workers, 1 log consumer.

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import ConnectionHandler, Dispatcher, SocketServer, WorkerPool
from .logsink import LogSink


logger = logging.getLogger(__name__)


def setup_logging(level_name: str = "INFO") -> None:
    """Configure logging once for the process."""
    level = getattr(logging, level_name.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("healthresponder").setLevel(level)


class HealthServer:
    """
    The liveness responder.

    Usage:
        server = HealthServer(ServerConfig.from_env())
        server.run()          # Blocks; Ctrl+C or SIGTERM to stop

    Tests run it in a background thread and call shutdown().
    """

    def __init__(self, config: Optional[ServerConfig] = None, sink: Optional[LogSink] = None):
        """
        Args:
            config: Server configuration. Defaults are used if omitted.
            sink: Access log sink. A new one is created if omitted.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self.sink = sink or LogSink(capacity=self.config.log_queue_capacity)
        self.handler = ConnectionHandler(self.config, self.sink)
        self.pool = WorkerPool(
            size=self.config.pool_size,
            handler=self.handler.handle,
            queue_capacity=self.config.queue_capacity,
        )
        self.dispatcher = Dispatcher(self.pool, self.sink)
        self._socket_server = SocketServer(self.config)

    @property
    def address(self):
        """Bound (host, port); meaningful once the server is listening."""
        return self._socket_server.address

    def run(self, configure_logging: bool = True):
        """
        Start everything and serve until shutdown() (blocking).

        Args:
            configure_logging: Call setup_logging() first. Embedders
                               with their own logging config pass False.

        Raises:
            OSError: If the listening socket cannot be bound.
        """
        if configure_logging:
            setup_logging(self.config.log_level)

        self.sink.start()
        self.pool.start()

        favicon = "on" if self.config.show_favicon else "off"
        logger.info(
            f"Starting health responder on {self.config.host}:{self.config.port} "
            f"({self.config.pool_size} workers, favicon {favicon})"
        )

        try:
            self._socket_server.start(self.dispatcher.dispatch)
        finally:
            self._stop()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Stop accepting connections. run() returns shortly after."""
        self._socket_server.shutdown()

    def _stop(self):
        # No graceful drain: queued connections die with the process
        self.pool.shutdown(wait=False)
        logger.info(f"Server stopped ({self.dispatcher.stats})")
        self.sink.close(timeout=1.0)
