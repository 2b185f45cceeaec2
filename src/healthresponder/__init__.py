"""
=============================================================================
HEALTHRESPONDER - Tiny HTTP Liveness Endpoint
=============================================================================

A minimal responder for liveness probes, load balancer health checks and
smoke tests. It answers:

    GET|HEAD /             → 200 "OK"
    GET|HEAD /favicon.ico  → 200 image/png   (SHOW_FAVICON=false disables)
    anything else          → 404 / 408 / 413 / 431 / 501

and nothing more. What it does carefully is stay up under abuse: every
read is size- and deadline-bounded, workers have private bounded queues,
saturated workers shed load instead of stalling the accept loop, and one
broken request never takes a worker down.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    healthresponder/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m healthresponder)
    ├── server.py            # HealthServer orchestrator
    ├── config.py            # ServerConfig dataclass + env parsing
    ├── errors.py            # Per-connection error taxonomy
    ├── logsink.py           # Non-blocking access log writer
    ├── core/                # Sockets, workers, dispatch
    ├── http/                # Parsing and response bytes
    └── handlers/            # The two fixed routes

=============================================================================
QUICK START
=============================================================================

    PORT=8080 THREAD_POOL_SIZE=2 python -m healthresponder

    from healthresponder import HealthServer, ServerConfig
    HealthServer(ServerConfig(port=9000)).run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HealthServer
from .config import ServerConfig

__all__ = ["HealthServer", "ServerConfig", "__version__"]
