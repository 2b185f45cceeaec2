"""
Unit tests for the worker pool.
"""

import queue
import threading

import pytest

from healthresponder.core.thread_pool import Worker, WorkerPool, WorkerState


class TestWorker:
    """Tests for a single worker."""

    def test_handles_in_order_and_closes(self, make_conn):
        seen = []
        done = threading.Event()

        def handler(conn):
            seen.append(conn.name)
            if len(seen) == 3:
                done.set()

        worker = Worker(0, handler, queue_capacity=10)
        conns = [make_conn(str(i)) for i in range(3)]
        for conn in conns:
            worker.queue.put_nowait(conn)
        worker.start()

        assert done.wait(5.0)
        worker.shutdown()
        worker.join(5.0)

        assert seen == ["0", "1", "2"]
        assert all(conn.closed == 1 for conn in conns)
        assert worker.tasks_completed == 3
        assert worker.state == WorkerState.STOPPED

    def test_exception_is_isolated(self, make_conn, caplog):
        """A handler that raises costs one connection, not the worker."""
        done = threading.Event()

        def handler(conn):
            if conn.name == "bad":
                raise RuntimeError("boom")
            done.set()

        worker = Worker(7, handler)
        worker.start()
        bad, good = make_conn("bad"), make_conn("good")
        worker.queue.put_nowait(bad)
        worker.queue.put_nowait(good)

        assert done.wait(5.0)
        worker.shutdown()
        worker.join(5.0)

        assert bad.closed == 1
        assert good.closed == 1
        assert worker.tasks_failed == 1
        assert worker.tasks_completed == 1
        assert "Worker 7 failed handling a connection" in caplog.text

    def test_queue_is_bounded(self):
        worker = Worker(0, lambda conn: None, queue_capacity=2)
        assert worker.queue.maxsize == 2

    def test_shutdown_marks_closed(self):
        worker = Worker(0, lambda conn: None)
        worker.start()
        worker.shutdown()
        worker.join(5.0)
        assert worker.closed
        assert not worker.is_alive()

    def test_shutdown_unstarted(self):
        worker = Worker(0, lambda conn: None)
        worker.shutdown()
        assert worker.closed

    def test_shutdown_full_queue_without_blocking(self, make_conn):
        release = threading.Event()
        worker = Worker(0, lambda conn: release.wait(5.0), queue_capacity=1)
        worker.start()
        worker.queue.put(make_conn("running"))
        # Fill the queue behind the busy worker
        while True:
            try:
                worker.queue.put_nowait(make_conn("queued"))
            except queue.Full:
                break

        worker.shutdown(block=False)  # must return immediately
        assert worker.closed
        release.set()


class TestWorkerPool:
    """Tests for WorkerPool."""

    def test_size_must_be_positive(self):
        with pytest.raises(ValueError):
            WorkerPool(0, handler=lambda conn: None)

    def test_each_worker_has_its_own_queue(self):
        pool = WorkerPool(3, handler=lambda conn: None, queue_capacity=5)
        queues = {id(worker.queue) for worker in pool.workers}
        assert len(queues) == 3
        assert all(worker.queue.maxsize == 5 for worker in pool.workers)

    def test_start_and_shutdown(self, make_conn):
        handled = []
        lock = threading.Lock()
        all_done = threading.Event()

        def handler(conn):
            with lock:
                handled.append(conn.name)
                if len(handled) == 4:
                    all_done.set()

        pool = WorkerPool(2, handler=handler)
        pool.start()
        pool.start()  # harmless

        for i in range(4):
            pool.workers[i % 2].queue.put_nowait(make_conn(str(i)))

        assert all_done.wait(5.0)
        pool.shutdown(wait=True, timeout=5.0)

        assert sorted(handled) == ["0", "1", "2", "3"]
        assert all(not worker.is_alive() for worker in pool.workers)
        assert pool.stats["completed"] == 4
        assert pool.stats["failed"] == 0

    def test_shutdown_unstarted_pool(self):
        pool = WorkerPool(2, handler=lambda conn: None)
        pool.shutdown()
        assert all(worker.closed for worker in pool.workers)
