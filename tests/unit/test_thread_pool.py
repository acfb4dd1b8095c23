"""
Unit tests for the bounded thread pool.
"""

import threading
import time

import pytest

from tinyhttpd.core.thread_pool import ThreadPool


@pytest.fixture
def pool():
    pool = ThreadPool(max_workers=2, queue_size=2, idle_timeout=0.1)
    pool.start()
    yield pool
    pool.shutdown(wait=False)


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_start_creates_fixed_workers(self, pool: ThreadPool):
        """Test that all workers start up front."""
        assert pool.worker_count == 2

    def test_submit_runs_task(self, pool: ThreadPool):
        """Test that a submitted task runs with its arguments."""
        done = threading.Event()
        results = []

        def task(a, b=0):
            results.append(a + b)
            done.set()

        assert pool.submit(task, args=(1,), kwargs={"b": 2}) is True
        assert done.wait(2.0)
        assert results == [3]

    def test_submit_before_start(self):
        """Test that an unstarted pool refuses work."""
        with pytest.raises(RuntimeError):
            ThreadPool().submit(lambda: None)

    def test_queue_full_rejects(self, pool: ThreadPool):
        """Test that submit() returns False once workers and queue are full."""
        release = threading.Event()
        started = threading.Semaphore(0)

        def blocker():
            started.release()
            release.wait(5.0)

        # Occupy both workers
        assert pool.submit(blocker)
        assert pool.submit(blocker)
        assert started.acquire(timeout=2.0)
        assert started.acquire(timeout=2.0)

        # Fill the queue
        assert pool.submit(blocker)
        assert pool.submit(blocker)

        assert pool.submit(blocker) is False
        assert pool.stats["tasks"]["rejected"] == 1

        release.set()

    def test_failing_task_does_not_kill_worker(self, pool: ThreadPool):
        """Test that an exception in a task leaves the worker serving."""
        done = threading.Event()

        def boom():
            raise ValueError("boom")

        for _ in range(4):
            pool.submit(boom, block=True, queue_timeout=2.0)
        pool.submit(done.set, block=True, queue_timeout=2.0)

        assert done.wait(2.0)
        assert pool.worker_count == 2
        assert all(worker.is_alive() for worker in pool._workers)

    def test_shutdown_waits_for_tasks(self):
        """Test that shutdown(wait=True) lets queued work finish."""
        pool = ThreadPool(max_workers=1, queue_size=4, idle_timeout=0.1)
        pool.start()
        results = []

        for i in range(3):
            pool.submit(lambda i=i: (time.sleep(0.05), results.append(i)))

        pool.shutdown(wait=True, timeout=5.0)

        assert results == [0, 1, 2]
        assert pool.worker_count == 0

    def test_submit_after_shutdown(self):
        """Test that a stopped pool refuses work."""
        pool = ThreadPool(max_workers=1, queue_size=1, idle_timeout=0.1)
        pool.start()
        pool.shutdown()

        with pytest.raises(RuntimeError):
            pool.submit(lambda: None)

    @pytest.mark.parametrize("kwargs", [{"max_workers": 0}, {"queue_size": 0}])
    def test_invalid_sizes(self, kwargs):
        """Test constructor validation."""
        with pytest.raises(ValueError):
            ThreadPool(**kwargs)
