"""
=============================================================================
BOUNDED WORKER POOL
=============================================================================

Each accepted connection becomes one job on a bounded queue, picked up by
one of a small set of worker threads:

    accept loop ──submit()──► [ job | job | job | ... ] ──► Worker-0
                                  bounded queue        ──► Worker-1
                                                       ──► Worker-N

=============================================================================
ADMISSION CONTROL
=============================================================================

The queue has a fixed size and submit() never blocks the accept loop
by default:

    ┌────────────────────────┬────────────────────────────────────────────┐
    │ Queue has room         │ submit() → True, a worker runs the job     │
    │ Queue is full          │ submit() → False, caller answers 503       │
    └────────────────────────┴────────────────────────────────────────────┘

Workers start at min_workers and grow toward max_workers while every
worker is busy and jobs are waiting.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Job:
    """A deferred call: func(*args, **kwargs)."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.monotonic)


class Worker(threading.Thread):
    """
    Pulls jobs off the shared queue until it receives None or is told to stop.

    A job that raises is logged with its traceback; the worker keeps running.
    """

    def __init__(
        self,
        job_queue: "queue.Queue[Optional[Job]]",
        worker_id: int,
        idle_timeout: float = 1.0
    ):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.job_queue = job_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._stop_event = threading.Event()

        self.jobs_completed = 0
        self.jobs_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._stop_event.is_set():
            try:
                job = self.job_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if job is None:
                    break
                self._execute(job)
            finally:
                self.job_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, job: Job):
        self.state = WorkerState.BUSY
        start_time = time.monotonic()

        try:
            job.func(*job.args, **job.kwargs)
            self.jobs_completed += 1
            logger.debug(
                f"Worker {self.worker_id} finished job in "
                f"{time.monotonic() - start_time:.3f}s"
            )
        except Exception as e:
            self.jobs_failed += 1
            logger.exception(f"Worker {self.worker_id} job failed: {e}")
        finally:
            self.state = WorkerState.IDLE

    def stop(self):
        """Ask the worker to exit after its current job."""
        self._stop_event.set()


class ThreadPool:
    """
    Fixed-bound pool of worker threads.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16, queue_size=128)
        pool.start()
        if not pool.submit(handle, args=(conn,)):
            reject(conn)
        pool.shutdown()
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 128,
        idle_timeout: float = 1.0
    ):
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError("Need 1 <= min_workers <= max_workers")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._queue: "queue.Queue[Optional[Job]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False
        self._next_worker_id = 0

    def start(self):
        """Start min_workers workers. Idempotent."""
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")
        with self._lock:
            for _ in range(self.min_workers):
                self._spawn_worker()
        self._started = True

    def _spawn_worker(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(self._queue, self._next_worker_id, self.idle_timeout)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[Dict[str, Any]] = None,
        block: bool = False,
        queue_timeout: Optional[float] = None
    ) -> bool:
        """
        Queue a job.

        Args:
            func: Callable to run on a worker.
            args: Positional arguments.
            kwargs: Keyword arguments.
            block: Wait for room in the queue instead of failing fast.
            queue_timeout: Upper bound on that wait.

        Returns:
            True if queued, False if the queue was full.

        Raises:
            RuntimeError: Pool not started, or shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutting_down:
            raise RuntimeError("Thread pool is shutting down")

        job = Job(func=func, args=args, kwargs=kwargs or {})
        try:
            self._queue.put(job, block=block, timeout=queue_timeout)
        except queue.Full:
            logger.warning(f"Job queue full ({self.max_queue_size}), rejecting")
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add one worker if all are busy and jobs are waiting."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            if self.busy_workers < len(self._workers):
                return
            if self._queue.qsize() == 0:
                return
            logger.debug(
                f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
            )
            self._spawn_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = 5.0):
        """
        Stop all workers.

        Args:
            wait: Let queued jobs drain first.
            timeout: Upper bound on that drain (None waits indefinitely).
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutting_down = True

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while self._queue.unfinished_tasks:
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning("Shutdown timeout, abandoning queued jobs")
                    break
                time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for worker in workers:
            worker.stop()
            try:
                self._queue.put_nowait(None)
            except queue.Full:
                pass  # stop() alone ends the worker at its next poll

        for worker in workers:
            worker.join(timeout=2.0)

        self._started = False
        logger.info("Thread pool shutdown complete")

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def pending(self) -> int:
        """Jobs waiting in the queue."""
        return self._queue.qsize()

    @property
    def stats(self) -> dict:
        return {
            "workers": {
                "total": self.worker_count,
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "jobs": {
                "queued": self.pending,
                "completed": sum(w.jobs_completed for w in self._workers),
                "failed": sum(w.jobs_failed for w in self._workers),
            },
        }
