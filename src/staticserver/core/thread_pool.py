"""
=============================================================================
WORKER POOL
=============================================================================

Connections are served by a fixed-ceiling pool of threads fed from a
bounded queue:

    accept loop ──submit(conn)──► [ queue, bounded ] ──► Worker-0
                                                     ──► Worker-1
                                                     ──► ...  (≤ max_workers)

Serving a file is almost entirely blocking I/O (stat, read, sendall), so
threads spend most of their time parked in the kernel and the GIL is not
the bottleneck. One slow client ties up one worker; the others keep
going.

    min_workers    started eagerly
    max_workers    hard ceiling; a new worker is added when every
                   existing one is busy and work is waiting
    queue_size     connections allowed to wait; past that submit()
                   returns False and the server answers 503

Shutdown puts one None ("poison pill") per worker on the queue after the
pending connections, so queued work is finished first.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.monotonic)

    @property
    def wait_time(self) -> float:
        return time.monotonic() - self.submitted_at


class Worker(threading.Thread):
    """
    Pulls tasks until it receives None.

    A task that raises is logged with its traceback; the worker itself
    survives and takes the next task.
    """

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int):
        super().__init__(name=f"staticserver-worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self) -> None:
        logger.debug("Worker %d started", self.worker_id)
        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute(task)
            finally:
                self.task_queue.task_done()
        self.state = WorkerState.STOPPED
        logger.debug("Worker %d stopped", self.worker_id)

    def _execute(self, task: Task) -> None:
        self.state = WorkerState.BUSY
        logger.debug("Worker %d picked up task after %.3fs in queue", self.worker_id, task.wait_time)
        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
        except Exception:
            self.tasks_failed += 1
            logger.exception("Worker %d: task failed", self.worker_id)
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        if not pool.submit(serve, args=(conn,)):
            reject(conn)
        pool.shutdown()
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 128,
    ):
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError(
                f"need 1 <= min_workers <= max_workers, got {min_workers}..{max_workers}"
            )
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False

    def start(self) -> None:
        if self._started:
            return
        logger.info("Starting %d workers (max %d)", self.min_workers, self.max_workers)
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._started = True

    def _add_worker(self) -> Worker:
        # caller holds self._lock
        worker = Worker(self._task_queue, worker_id=len(self._workers))
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None) -> bool:
        """
        Queue ``func(*args, **kwargs)`` without blocking.

        Returns:
            False when the queue is full.

        Raises:
            RuntimeError: The pool is not running.
        """
        if not self._started or self._shutting_down:
            raise RuntimeError("Thread pool is not running")

        try:
            self._task_queue.put_nowait(Task(func, args, kwargs or {}))
        except queue.Full:
            logger.warning("Task queue full (%d waiting)", self.max_queue_size)
            return False

        self._maybe_grow()
        return True

    def _maybe_grow(self) -> None:
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            if self.busy_workers == len(self._workers) and not self._task_queue.empty():
                worker = self._add_worker()
                logger.debug("Grew pool to %d workers (added %s)", len(self._workers), worker.name)

    def shutdown(self, wait: bool = True, timeout: float = 5.0) -> None:
        """
        Stop accepting work and stop the workers.

        Args:
            wait: Let queued tasks run first. When False, tasks still in
                  the queue are dropped.
            timeout: Per-worker join timeout in seconds.
        """
        if not self._started:
            return
        logger.info("Stopping worker pool")
        self._shutting_down = True

        if not wait:
            self._drain_queue()

        for _ in self._workers:
            self._task_queue.put(None)
        for worker in self._workers:
            worker.join(timeout=timeout)
            if worker.is_alive():
                logger.warning("%s did not stop within %.1fs", worker.name, timeout)

        self._workers.clear()
        self._started = False
        self._shutting_down = False
        logger.info("Worker pool stopped")

    def _drain_queue(self) -> None:
        while True:
            try:
                self._task_queue.get_nowait()
            except queue.Empty:
                return
            self._task_queue.task_done()

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def queued(self) -> int:
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        return {
            "workers": self.worker_count,
            "busy": self.busy_workers,
            "queued": self.queued,
            "completed": sum(w.tasks_completed for w in self._workers),
            "failed": sum(w.tasks_failed for w in self._workers),
        }
