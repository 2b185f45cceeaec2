"""
=============================================================================
ACCESS LOG SINK
=============================================================================

Workers must never wait on logging. A slow terminal, a full pipe or a
stuck log shipper should cost us log lines, not latency.

    ┌──────────┐  try_submit()  ┌──────────────────────┐   emit()   ┌──────┐
    │ Worker 0 │───────────────►│                      │───────────►│      │
    ├──────────┤                │  bounded queue (100) │  consumer  │ log  │
    │ Worker 1 │───────────────►│                      │   thread   │      │
    ├──────────┤                └──────────────────────┘            └──────┘
    │ Accept   │───────────────►        ▲
    └──────────┘                        │
                          full? → DROPPED, caller moves on

=============================================================================
GUARANTEES
=============================================================================

- try_submit() never blocks.
- Lines are written in submission order by a single thread.
- A line is written at most once; dropped lines are only counted.
- After close(), submissions report DISCONNECTED.

=============================================================================
LOG ENTRY FORMAT
=============================================================================

    203.0.113.7:51234 "GET / HTTP/1.1" 78 bytes
    ───────┬───────── ───────┬──────── ───┬────
         peer          request line    header bytes + Content-Length

Peer and request line come from the client, so control characters and
double quotes are replaced with "?" before formatting. A request line of

    GET /\\r\\n10.0.0.1 "GET /admin HTTP/1.1" 0 bytes

cannot forge a second log line.

=============================================================================
"""

import logging
import queue
import threading
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


logger = logging.getLogger(__name__)

# Access lines go to their own logger so they can be routed separately:
#   logging.getLogger("healthresponder.access").addHandler(file_handler)
access_logger = logging.getLogger("healthresponder.access")

_STOP = object()


def sanitize(text: str) -> str:
    """Replace control characters and double quotes with "?"."""
    return "".join(
        "?" if ch == '"' or unicodedata.category(ch) == "Cc" else ch
        for ch in text
    )


@dataclass(frozen=True)
class LogEntry:
    """One access log line, sanitized at construction time."""

    peer: str
    request_line: str
    byte_count: int

    @classmethod
    def create(cls, peer: str, request_line: str, byte_count: int) -> "LogEntry":
        return cls(sanitize(peer), sanitize(request_line), byte_count)

    def format(self) -> str:
        return f'{self.peer} "{self.request_line}" {self.byte_count} bytes'


class SubmitResult(Enum):
    """What happened to a submitted line."""
    ACCEPTED = "accepted"          # Queued for the consumer
    DROPPED = "dropped"            # Queue full, line discarded
    DISCONNECTED = "disconnected"  # Sink closed, nobody is reading


class LogSink:
    """
    Single-consumer, non-blocking log writer.

    Usage:
        sink = LogSink()
        sink.start()
        sink.try_submit('127.0.0.1:5000 "GET / HTTP/1.1" 40 bytes')
        ...
        sink.close()   # Writes what is queued, then stops
    """

    def __init__(
        self,
        capacity: int = 100,
        emit: Optional[Callable[[str], None]] = None,
    ):
        """
        Args:
            capacity: Lines buffered before new ones are dropped.
            emit: Output function, called from the consumer thread only.
                  Defaults to INFO on the healthresponder.access logger.
        """
        self._queue: queue.Queue = queue.Queue(maxsize=capacity)
        self._emit = emit or access_logger.info
        self._thread: Optional[threading.Thread] = None
        self._closed = threading.Event()
        self._lock = threading.Lock()

        self.accepted = 0
        self.dropped = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "LogSink":
        """Start the consumer thread. Calling it twice is harmless."""
        if self._thread is None:
            self._thread = threading.Thread(
                target=self._run, name="LogSink", daemon=True
            )
            self._thread.start()
        return self

    def try_submit(self, line: str) -> SubmitResult:
        """
        Queue a line without blocking.

        Safe to call from any thread, including before start(): lines
        simply wait in the queue until the consumer runs.
        """
        if self._closed.is_set():
            return SubmitResult.DISCONNECTED

        try:
            self._queue.put_nowait(line)
        except queue.Full:
            with self._lock:
                self.dropped += 1
            return SubmitResult.DROPPED

        with self._lock:
            self.accepted += 1
        return SubmitResult.ACCEPTED

    def submit_entry(self, entry: LogEntry) -> SubmitResult:
        """Format and submit an access log entry."""
        return self.try_submit(entry.format())

    def _run(self) -> None:
        while True:
            line = self._queue.get()
            try:
                if line is _STOP:
                    return
                self._emit(line)
            except Exception:
                # A broken handler must not kill the only consumer
                logger.exception("Log sink failed to write a line")
            finally:
                self._queue.task_done()

    def close(self, timeout: Optional[float] = 5.0) -> None:
        """
        Stop accepting lines, write what is queued, stop the consumer.

        Args:
            timeout: Seconds to wait for the consumer to finish.
        """
        if self._closed.is_set():
            return
        self._closed.set()

        if self._thread is None:
            return

        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning("Log sink did not drain in time; abandoning queued lines")
            return
        self._thread.join(timeout)
