"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the health responder.

Everything is read ONCE at startup. After that the values are plain
attributes on a dataclass that every component receives by reference.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── healthresponder --port 3000                                │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── PORT=3000 healthresponder                                  │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    PORT              Listen port (default: 8080)
    HOST              Bind address (default: 0.0.0.0)
    SHOW_FAVICON      Serve /favicon.ico (default: true)
    THREAD_POOL_SIZE  Worker threads (default: CPU count, or 4)
    LOG_LEVEL         Logging level (default: INFO)

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Optional


# ─────────────────────────────────────────────────────────────────────────
# HARD LIMITS
# ─────────────────────────────────────────────────────────────────────────

MAX_HEADER_SIZE = 8192
MAX_BODY_SIZE = 1 * 1024 * 1024  # 1 MiB
QUEUE_CAPACITY = 100
LOG_QUEUE_CAPACITY = 100
DEFAULT_POOL_SIZE = 4

_FALSE_VALUES = {"false", "0", "no", "off"}
_TRUE_VALUES = {"true", "1", "yes", "on"}


def parse_bool(raw: Optional[str], default: bool = True) -> bool:
    """
    Interpret an environment flag.

    Unknown or missing values keep the default, so a typo never silently
    turns a feature off.
    """
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _FALSE_VALUES:
        return False
    if value in _TRUE_VALUES:
        return True
    return default


def resolve_pool_size(raw: Optional[str], cpu_count: Optional[int] = None) -> int:
    """
    Derive the worker count.

    =====================================================================
    RESOLUTION ORDER
    =====================================================================

        THREAD_POOL_SIZE="8"     → 8
        THREAD_POOL_SIZE="0"     → 1   (clamped, never zero workers)
        THREAD_POOL_SIZE="abc"   → cpu_count
        THREAD_POOL_SIZE unset   → cpu_count
        cpu_count unknown        → 4

    Only plain ASCII digits count as an explicit value; "-2" or "1_0" are
    treated like garbage and fall through to the hardware default.
    =====================================================================

    Args:
        raw: The raw environment value (or None).
        cpu_count: Detected parallelism. None means "could not tell".

    Returns:
        Pool size, always >= 1.
    """
    if raw is not None:
        value = raw.strip()
        if value.isascii() and value.isdigit():
            return max(1, int(value))

    if cpu_count is None:
        return DEFAULT_POOL_SIZE
    return max(1, cpu_count)


@dataclass
class ServerConfig:
    """
    Configuration for the health responder.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog

    WORKER SETTINGS
    - pool_size, queue_capacity

    REQUEST LIMITS
    - max_header_size, max_body_size
    - header_timeout, body_timeout, io_timeout, linger_timeout

    ROUTES
    - show_favicon

    LOGGING
    - log_level, log_queue_capacity

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to. Sidecars listen on every interface so the
    orchestrator's probe can reach them.
    """

    port: int = 8080
    """The port number to listen on."""

    backlog: int = 128
    """Maximum number of connections the kernel queues before accept()."""

    # ─────────────────────────────────────────────────────────────────────
    # WORKER SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    pool_size: int = field(default_factory=lambda: resolve_pool_size(None, os.cpu_count()))
    """Number of worker threads, each with its own queue."""

    queue_capacity: int = QUEUE_CAPACITY
    """
    Per-worker queue capacity. When a worker's queue is full the next
    connection assigned to it is dropped.
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_header_size: int = MAX_HEADER_SIZE
    """Largest accepted header block, terminator included (431 above)."""

    max_body_size: int = MAX_BODY_SIZE
    """Largest accepted Content-Length (413 above)."""

    header_timeout: float = 5.0
    """Wall-clock budget for reading the whole header block (408 after)."""

    body_timeout: float = 5.0
    """Wall-clock budget for draining the whole body (408 after)."""

    io_timeout: float = 5.0
    """Socket-level timeout applied to every single read and write."""

    linger_timeout: float = 0.5
    """How long close() waits for the peer while draining unread bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # ROUTES
    # ─────────────────────────────────────────────────────────────────────

    show_favicon: bool = True
    """Serve /favicon.ico. When False the path answers 404."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_queue_capacity: int = LOG_QUEUE_CAPACITY
    """Access log lines buffered before new ones are dropped."""

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ; tests
                     pass a plain dict.

        Raises:
            ValueError: If PORT is not an integer.
        """
        env = os.environ if environ is None else environ
        port = env.get("PORT", "8080")
        try:
            port_number = int(port)
        except ValueError:
            raise ValueError(f"Invalid PORT: {port!r}") from None

        return cls(
            host=env.get("HOST", "0.0.0.0"),
            port=port_number,
            pool_size=resolve_pool_size(env.get("THREAD_POOL_SIZE"), os.cpu_count()),
            show_favicon=parse_bool(env.get("SHOW_FAVICON"), default=True),
            log_level=env.get("LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast at startup instead of at the first request.
        Port 0 is accepted and asks the OS for an ephemeral port.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.pool_size < 1:
            raise ValueError("pool_size must be >= 1")

        if self.queue_capacity < 1:
            raise ValueError("queue_capacity must be >= 1")

        if self.max_header_size < 16:
            raise ValueError("max_header_size must be >= 16")

        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0")

        for name in ("header_timeout", "body_timeout", "io_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
