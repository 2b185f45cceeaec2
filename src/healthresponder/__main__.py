"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    # Serve with environment configuration (PORT, THREAD_POOL_SIZE, ...)
    python -m healthresponder

    # Flags override the environment
    python -m healthresponder --port 3000 --workers 2 --no-favicon

    # Liveness self-check, e.g. a Dockerfile HEALTHCHECK:
    #   HEALTHCHECK CMD ["healthresponder", "--healthcheck"]
    python -m healthresponder --healthcheck; echo $?    # 0 healthy, 1 not

=============================================================================
EXIT CODES
=============================================================================

    0   Server stopped normally / self-check got 200
    1   Could not bind / self-check failed
    2   Invalid configuration (argparse convention)

=============================================================================
"""

import argparse
import socket
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig
from .server import HealthServer


PROBE_REQUEST = (
    b"GET / HTTP/1.1\r\n"
    b"Host: localhost\r\n"
    b"User-Agent: healthresponder-healthcheck\r\n"
    b"Connection: close\r\n"
    b"\r\n"
)


def probe(host: str, port: int, timeout: float = 2.0) -> bool:
    """
    Ask a running responder whether it is alive.

    Returns:
        True if it answered "HTTP/1.1 200".
    """
    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            sock.sendall(PROBE_REQUEST)
            response = b""
            while b"\r\n" not in response and len(response) < 1024:
                chunk = sock.recv(1024)
                if not chunk:
                    break
                response += chunk
    except OSError:
        return False

    return response.startswith(b"HTTP/1.1 200 ")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="healthresponder",
        description="Minimal HTTP liveness endpoint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  PORT              Listen port (default: 8080)
  HOST              Bind address (default: 0.0.0.0)
  SHOW_FAVICON      Serve /favicon.ico (default: true)
  THREAD_POOL_SIZE  Worker threads (default: CPU count, or 4)
  LOG_LEVEL         Logging level (default: INFO)
        """,
    )

    parser.add_argument("--host", "-H", default=None, help="Address to bind to")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port to listen on")
    parser.add_argument("--workers", "-w", type=int, default=None, help="Number of worker threads")
    parser.add_argument(
        "--no-favicon",
        action="store_true",
        help="Answer 404 for /favicon.ico",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level",
    )
    parser.add_argument(
        "--healthcheck",
        action="store_true",
        help="Probe the responder on localhost and exit 0 if it answers 200",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"healthresponder {__version__}",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        parser.error(str(e))

    # Flags win over the environment
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.pool_size = max(1, args.workers)
    if args.no_favicon:
        config.show_favicon = False
    if args.log_level is not None:
        config.log_level = args.log_level

    if args.healthcheck:
        return 0 if probe("127.0.0.1", config.port) else 1

    try:
        server = HealthServer(config)
    except ValueError as e:
        parser.error(str(e))

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
