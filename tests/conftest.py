"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from typing import Generator, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from healthresponder import HealthServer, ServerConfig
from healthresponder.core.connection import Connection
from healthresponder.logsink import LogEntry, LogSink, SubmitResult


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request for the liveness path."""
    return (
        b"GET / HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def config() -> ServerConfig:
    """Test configuration with short deadlines."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        pool_size=2,
        header_timeout=0.5,
        body_timeout=0.5,
        io_timeout=0.5,
        linger_timeout=0.05,
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class RecordingSink:
    """Stands in for LogSink; keeps every submitted line."""

    def __init__(self):
        self.lines: list[str] = []
        self._lock = threading.Lock()

    def try_submit(self, line: str) -> SubmitResult:
        with self._lock:
            self.lines.append(line)
        return SubmitResult.ACCEPTED

    def submit_entry(self, entry: LogEntry) -> SubmitResult:
        return self.try_submit(entry.format())


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


class FakeConnection:
    """Records how the pool and dispatcher tear it down."""

    def __init__(self, name: str = "conn"):
        self.name = name
        self.closed = 0
        self.aborted = False

    def close(self):
        self.closed += 1

    def abort(self):
        self.aborted = True

    def __repr__(self):
        return f"FakeConnection({self.name!r})"


@pytest.fixture
def make_conn():
    return FakeConnection


class FailingSocket:
    """Socket stand-in whose recv() raises the given error."""

    def __init__(self, error: Exception):
        self.error = error
        self.sent = b""
        self.closed = False

    def settimeout(self, value):
        pass

    def recv(self, size):
        raise self.error

    def sendall(self, data):
        self.sent += data

    def shutdown(self, how):
        pass

    def close(self):
        self.closed = True


@pytest.fixture
def failing_socket():
    return FailingSocket


class SocketPair:
    """
    A connected client socket plus a server-side Connection.

    Uses socket.socketpair(), so no listener or port is involved.
    """

    def __init__(self, config: ServerConfig, address=("203.0.113.7", 40000)):
        client, server = socket.socketpair()
        client.settimeout(5.0)
        self.client = client
        self.conn = Connection(
            socket=server,
            address=address,
            io_timeout=config.io_timeout,
            linger_timeout=config.linger_timeout,
        )

    def send(self, data: bytes, close_write: bool = False):
        self.client.sendall(data)
        if close_write:
            self.client.shutdown(socket.SHUT_WR)

    def read_all(self) -> bytes:
        """Read until the server closes its side."""
        chunks = []
        while True:
            try:
                chunk = self.client.recv(65536)
            except ConnectionResetError:
                break
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    def close(self):
        self.client.close()
        self.conn.abort()


@pytest.fixture
def pair(config: ServerConfig) -> Generator[SocketPair, None, None]:
    p = SocketPair(config)
    yield p
    p.close()


class HandlerRun:
    """Runs ConnectionHandler.handle(conn) in a background thread."""

    def __init__(self, handler, conn: Connection):
        self.status = None
        self.error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, args=(handler, conn), daemon=True)
        self._thread.start()

    def _run(self, handler, conn):
        try:
            self.status = handler.handle(conn)
        except BaseException as e:  # surfaced by join()
            self.error = e

    def join(self, timeout: float = 5.0):
        self._thread.join(timeout)
        assert not self._thread.is_alive(), "handler did not finish"
        if self.error is not None:
            raise self.error
        return self.status


@pytest.fixture
def run_handler():
    return HandlerRun


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class

    def __init__(self, server: HealthServer, lines: list):
        self.server = server
        self.lines = lines
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"configure_logging": False},
            daemon=True,
        )
        self._thread.start()
        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def request(self, raw: bytes) -> bytes:
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(raw)
            chunks = []
            while True:
                chunk = s.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def wait_for_lines(self, count: int, timeout: float = 2.0) -> list:
        deadline = time.monotonic() + timeout
        while len(self.lines) < count and time.monotonic() < deadline:
            time.sleep(0.01)
        return list(self.lines)

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """Create a running server on an OS-assigned port."""
    lines: list = []
    server = HealthServer(config, sink=LogSink(emit=lines.append))
    srv = TestServer(server, lines)
    srv.start()

    yield srv

    srv.stop()
