"""
=============================================================================
DISPATCHER: ROUND-ROBIN WITH DROP-ON-FULL BACKPRESSURE
=============================================================================

Called by the accept loop for every new connection. Picks a worker in
strict rotation and tries to enqueue WITHOUT waiting.

    connection #  0  1  2  3  4  5  6 ...
    worker        0  1  2  0  1  2  0 ...      (pool size 3)

=============================================================================
WHEN A QUEUE IS FULL
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept() ──► dispatch(conn) ──► put_nowait() ──► QUEUED            │
    │                                        │                             │
    │                                        ├─ queue.Full ──► QUEUE_FULL  │
    │                                        │    close socket, no reply   │
    │                                        │    log "queue full"         │
    │                                        │                             │
    │                                        └─ worker gone ─► WORKER_GONE │
    │                                             close socket, no reply   │
    │                                             log "worker gone"        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Blocking here would stall the accept loop behind ONE saturated worker
while the others sit idle. A dropped connection is cheap for a health
checker: the probe fails, it retries.

The assignment counter advances once per connection regardless of the
outcome, so connection N always goes to worker N mod pool size.

=============================================================================
"""

import logging
import queue
import threading
from enum import Enum
from typing import Any, Optional

from ..logsink import LogSink
from .thread_pool import WorkerPool


logger = logging.getLogger(__name__)


class DispatchOutcome(Enum):
    """What happened to a dispatched connection."""
    QUEUED = "queued"
    QUEUE_FULL = "queue_full"    # Worker saturated, connection dropped
    WORKER_GONE = "worker_gone"  # Worker stopped, connection dropped


class Dispatcher:
    """
    Assigns accepted connections to workers.

    Only the accept loop calls dispatch(), so the counter needs no lock;
    the lock below only protects the stats read from other threads.
    """

    def __init__(self, pool: WorkerPool, sink: Optional[LogSink] = None):
        self.pool = pool
        self.sink = sink
        self._next = 0
        self._lock = threading.Lock()
        self.counts = {outcome: 0 for outcome in DispatchOutcome}

    def next_worker_index(self) -> int:
        """Index the next connection will go to."""
        return self._next % self.pool.size

    def dispatch(self, conn: Any) -> DispatchOutcome:
        """
        Hand a connection to the next worker without blocking.

        Args:
            conn: An accepted Connection.

        Returns:
            The outcome. Anything but QUEUED means the connection has
            already been closed.
        """
        index = self._next % self.pool.size
        self._next += 1
        worker = self.pool.workers[index]

        if worker.closed:
            outcome = DispatchOutcome.WORKER_GONE
        else:
            try:
                worker.queue.put_nowait(conn)
                outcome = DispatchOutcome.QUEUED
            except queue.Full:
                outcome = DispatchOutcome.QUEUE_FULL

        with self._lock:
            self.counts[outcome] += 1

        if outcome is not DispatchOutcome.QUEUED:
            conn.abort()
            self._report_drop(index, outcome)

        return outcome

    def _report_drop(self, index: int, outcome: DispatchOutcome) -> None:
        if outcome is DispatchOutcome.QUEUE_FULL:
            message = f"Connection dropped: worker {index} queue is full"
        else:
            message = f"Connection dropped: worker {index} is gone"

        if self.sink is not None:
            self.sink.try_submit(message)
        else:
            logger.warning(message)

    @property
    def stats(self) -> dict:
        with self._lock:
            return {outcome.value: count for outcome, count in self.counts.items()}
