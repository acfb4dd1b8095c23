"""
=============================================================================
BOUNDED THREAD POOL
=============================================================================

A fixed set of worker threads pulling tasks from a bounded queue. This is
the server's concurrency limit: at most `max_workers` connections are
being served at once, and at most `queue_size` more are waiting.

=============================================================================
WHY NOT A THREAD PER CONNECTION?
=============================================================================

    for conn in accept_connections():
        threading.Thread(target=handle, args=(conn,)).start()

Nothing stops this from creating ten thousand threads, each with its own
stack, when ten thousand clients show up (or one client opens ten
thousand sockets and goes quiet). With a pool, the cost of a flood is
bounded up front:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept thread ──submit()──►  [ task queue, maxsize=queue_size ]    │
    │                                    │                                 │
    │                   queue full?  ────┤                                 │
    │                   submit() → False │ get()                           │
    │                   (caller → 503)   ▼                                 │
    │                   ┌──────────┐ ┌──────────┐       ┌──────────┐       │
    │                   │ Worker 0 │ │ Worker 1 │  ...  │ Worker N │       │
    │                   └──────────┘ └──────────┘       └──────────┘       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WORKER LIFECYCLE
=============================================================================

    while not shutdown:
        task = queue.get(timeout=idle_timeout)
        if task is None:        ← poison pill: exit
            break
        execute(task)           ← exceptions are logged, never fatal
        queue.task_done()

A task that raises is logged with its traceback and the worker moves on
to the next one, so one bad request can never shrink the pool.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states, for stats and debugging."""
    IDLE = "idle"        # Waiting for a task
    BUSY = "busy"        # Executing a task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred function call.

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        submitted_at: When the task was queued, for wait-time logging.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """Daemon thread that executes tasks from the shared queue."""

    def __init__(
        self,
        task_queue: queue.Queue,
        worker_id: int,
        idle_timeout: float = 1.0
    ):
        """
        Args:
            task_queue: Queue to pull tasks from.
            worker_id: Identifier used in the thread name and logs.
            idle_timeout: How long get() waits before re-checking shutdown.
        """
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        """Run one task, isolating the worker from whatever it raises."""
        self.state = WorkerState.BUSY
        start_time = time.time()
        waited = start_time - task.submitted_at

        try:
            task.func(*task.args, **task.kwargs)
            elapsed = time.time() - start_time
            logger.debug(
                f"Worker {self.worker_id} completed task in {elapsed:.3f}s "
                f"(queued {waited:.3f}s)"
            )
            self.tasks_completed += 1
        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        """Ask the worker to stop after its current task."""
        self._shutdown.set()


class ThreadPool:
    """
    Fixed-size thread pool with a bounded queue.

        pool = ThreadPool(max_workers=16, queue_size=64)
        pool.start()

        if not pool.submit(handle, args=(conn,)):
            reject(conn)            # Queue full

        pool.shutdown(wait=True)
    """

    def __init__(
        self,
        max_workers: int = 16,
        queue_size: int = 64,
        idle_timeout: float = 1.0
    ):
        """
        Args:
            max_workers: Number of worker threads, all started by start().
            queue_size: Tasks allowed to wait for a free worker.
            idle_timeout: Worker polling interval; bounds shutdown latency.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        self.max_workers = max_workers
        self.queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()

        self._started = False
        self._shutdown = False
        self.tasks_rejected = 0

    def start(self):
        """Start all workers. Calling it again is a no-op."""
        with self._lock:
            if self._started:
                return

            logger.info(
                f"Starting thread pool with {self.max_workers} workers "
                f"(queue size {self.queue_size})"
            )
            for worker_id in range(self.max_workers):
                worker = Worker(
                    task_queue=self._task_queue,
                    worker_id=worker_id,
                    idle_timeout=self.idle_timeout,
                )
                self._workers.append(worker)
                worker.start()

            self._shutdown = False
            self._started = True

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = False,
        queue_timeout: Optional[float] = None
    ) -> bool:
        """
        Queue a task for execution.

        Args:
            func: The function to execute.
            args: Positional arguments for the function.
            kwargs: Keyword arguments for the function.
            block: Wait for queue space instead of failing immediately.
            queue_timeout: With block=True, how long to wait for space.

        Returns:
            True if the task was queued, False if the queue was full.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        try:
            self._task_queue.put(task, block=block, timeout=queue_timeout)
        except queue.Full:
            self.tasks_rejected += 1
            return False
        return True

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish first. If False they are dropped.
            timeout: With wait=True, the most seconds to wait for the queue
                     to drain before stopping anyway. None waits forever.
        """
        with self._lock:
            if not self._started:
                return
            logger.info("Shutting down thread pool...")
            self._shutdown = True

        if wait:
            deadline = None if timeout is None else time.time() + timeout
            while self._task_queue.unfinished_tasks:
                if deadline is not None and time.time() > deadline:
                    logger.warning("Shutdown timeout, abandoning queued tasks")
                    break
                time.sleep(0.05)

        if not wait:
            self._drain_queue()

        for worker in self._workers:
            worker.shutdown()
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                pass  # Worker notices the shutdown event instead

        for worker in self._workers:
            worker.join(timeout=2.0)

        with self._lock:
            self._workers.clear()
            self._started = False

        logger.info("Thread pool shutdown complete")

    def _drain_queue(self):
        """Discard queued tasks that have not started."""
        while True:
            try:
                self._task_queue.get_nowait()
            except queue.Empty:
                return
            self._task_queue.task_done()

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def pending_tasks(self) -> int:
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Snapshot of pool activity, e.g. for debug logging."""
        return {
            "workers": {
                "total": self.worker_count,
                "busy": self.busy_workers,
                "idle": self.worker_count - self.busy_workers,
            },
            "tasks": {
                "pending": self.pending_tasks,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
                "rejected": self.tasks_rejected,
            },
        }
