"""
=============================================================================
FIXED-SIZE WORKER POOL
=============================================================================

N long-lived worker threads. Unlike a classic thread pool there is no
shared task queue: every worker drains its OWN bounded queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          WorkerPool (N=3)                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Dispatcher ──► [ q0: c0 c3 c6 ... ] ──► Worker-0 ──► handler       │
    │        │                                                             │
    │        ├──────► [ q1: c1 c4 ...    ] ──► Worker-1 ──► handler       │
    │        │                                                             │
    │        └──────► [ q2: c2 c5 ...    ] ──► Worker-2 ──► handler       │
    │                                                                      │
    │   • each queue holds at most 100 connections                        │
    │   • one producer (the accept loop), one consumer (its worker)       │
    │   • a slow connection only delays the queue it sits in              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WORKER LIFECYCLE
=============================================================================

    def run(self):
        while True:
            conn = queue.get()        ← BLOCKS until a connection arrives
            if conn is None:          ← "poison pill" from shutdown()
                break
            try:
                handler(conn)
            except Exception:         ← isolation boundary: log, close,
                log it                   keep going
            finally:
                conn.close()

One misbehaving request can never take its worker down with it.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from enum import Enum

from ..config import QUEUE_CAPACITY


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """
    Worker thread states.

    Used for monitoring and debugging the pool.
    """
    IDLE = "idle"        # Waiting for a connection
    BUSY = "busy"        # Handling a connection
    STOPPED = "stopped"  # Thread exited


class Worker(threading.Thread):
    """
    Worker thread with a private connection queue.

    Attributes:
        queue: Bounded FIFO this worker (and only this worker) reads.
        handler: Called with each dequeued connection.
        tasks_completed: Connections handled without an exception.
        tasks_failed: Connections whose handler raised.
    """

    def __init__(
        self,
        worker_id: int,
        handler: Callable[[Any], Any],
        queue_capacity: int = QUEUE_CAPACITY,
    ):
        # daemon=True: a stuck worker never keeps the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.worker_id = worker_id
        self.handler = handler
        self.queue: queue.Queue = queue.Queue(maxsize=queue_capacity)

        self.state = WorkerState.IDLE
        self._closed = threading.Event()

        # Metrics
        self.tasks_completed = 0
        self.tasks_failed = 0

    @property
    def closed(self) -> bool:
        """True once nothing will ever read this worker's queue again."""
        return self._closed.is_set()

    def run(self):
        """Main worker loop."""
        logger.debug(f"Worker {self.worker_id} started")

        try:
            while True:
                conn = self.queue.get()
                if conn is None:
                    break
                self._execute(conn)
        finally:
            self._closed.set()
            self.state = WorkerState.STOPPED
            logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, conn: Any):
        """
        Handle one connection inside the isolation boundary.

        We catch ALL exceptions here because one bad connection must not
        stop the worker from serving the rest of its queue.
        """
        self.state = WorkerState.BUSY
        start_time = time.monotonic()

        try:
            self.handler(conn)
            self.tasks_completed += 1
        except Exception as e:
            elapsed = time.monotonic() - start_time
            logger.exception(
                f"Worker {self.worker_id} failed handling a connection after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1
        finally:
            # The handler closes on every path it knows about; this
            # covers the ones it doesn't.
            try:
                conn.close()
            except Exception:
                logger.exception(f"Worker {self.worker_id} failed closing a connection")
            self.state = WorkerState.IDLE

    def shutdown(self, block: bool = True):
        """
        Stop accepting work and send the poison pill.

        Connections already queued ahead of the pill are still handled.

        Args:
            block: Wait for room in a full queue. With False a full
                   queue keeps the worker running until process exit.
        """
        if self._closed.is_set():
            return
        self._closed.set()
        if not self.is_alive():
            return
        try:
            self.queue.put(None, block=block)
        except queue.Full:
            logger.debug(f"Worker {self.worker_id} queue full, no room for the stop signal")


class WorkerPool:
    """
    Fixed number of workers, each with its own queue.

    Usage:
        pool = WorkerPool(size=4, handler=handler.handle)
        pool.start()
        pool.workers[2].queue.put_nowait(conn)   # normally via Dispatcher
        pool.shutdown()
    """

    def __init__(
        self,
        size: int,
        handler: Callable[[Any], Any],
        queue_capacity: int = QUEUE_CAPACITY,
    ):
        """
        Args:
            size: Number of workers, at least 1.
            handler: Connection handler shared by all workers.
            queue_capacity: Per-worker queue size.
        """
        if size < 1:
            raise ValueError("WorkerPool size must be >= 1")

        self.size = size
        self.queue_capacity = queue_capacity
        self.workers: list[Worker] = [
            Worker(worker_id=i, handler=handler, queue_capacity=queue_capacity)
            for i in range(size)
        ]
        self._started = False

    def start(self):
        """Start every worker thread. Calling it twice is harmless."""
        if self._started:
            return

        logger.info(f"Starting worker pool with {self.size} workers")
        for worker in self.workers:
            worker.start()
        self._started = True

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop all workers.

        Not a graceful drain: it exists for tests and for process exit.

        Args:
            wait: Join the worker threads.
            timeout: Seconds to wait for EACH worker.
        """
        logger.info("Shutting down worker pool...")
        for worker in self.workers:
            worker.shutdown(block=wait)

        if wait and self._started:
            for worker in self.workers:
                worker.join(timeout)

    @property
    def stats(self) -> dict:
        """Point-in-time counters for debugging."""
        return {
            "workers": self.size,
            "busy": sum(1 for w in self.workers if w.state == WorkerState.BUSY),
            "queued": sum(w.queue.qsize() for w in self.workers),
            "completed": sum(w.tasks_completed for w in self.workers),
            "failed": sum(w.tasks_failed for w in self.workers),
        }
