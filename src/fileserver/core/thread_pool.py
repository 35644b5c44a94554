"""
=============================================================================
THREAD POOL IMPLEMENTATION
=============================================================================

A fixed set of long-lived worker threads pulling tasks from one shared
FIFO queue. Every accepted connection becomes one task; whichever worker
is free first runs it to completion.

=============================================================================
WHY A FIXED POOL?
=============================================================================

Thread-per-connection:

    for connection in accept_connections():
        Thread(target=handle, args=(connection,)).start()

    1. Thread creation on every request
    2. No limit on concurrent threads
    3. 10,000 slow clients = 10,000 threads

Fixed pool:

    pool = ThreadPool(num_workers=8)
    pool.start()

    for connection in accept_connections():
        pool.submit(handle, args=(connection,))

    Workers are created once and reused. At most num_workers requests are
    in progress; the rest wait in the queue.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          ThreadPool                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   submit() ──► ┌─────────────────────────────────────────────┐      │
    │                │  TASK QUEUE (queue.Queue, unbounded, FIFO)  │      │
    │                │  [Task] [Task] [Task] ... [None] [None]     │      │
    │                └──────────────────────┬──────────────────────┘      │
    │                                       │ get()                        │
    │                                       ▼                              │
    │      ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐            │
    │      │ Worker 0 │ │ Worker 1 │ │ Worker 2 │ │ Worker 3 │            │
    │      │ (idle)   │ │ (busy)   │ │ (busy)   │ │ (idle)   │            │
    │      └──────────┘ └──────────┘ └──────────┘ └──────────┘            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

queue.Queue does the locking: a mutex around a deque plus a condition
variable that wakes one waiting worker per put(). A task is handed to
exactly one worker, and nothing is dropped or duplicated.

The queue is unbounded. submit() never blocks the accept loop; under
overload connections wait in the queue rather than being refused.

=============================================================================
SHUTDOWN: POISON PILLS
=============================================================================

    pool.shutdown()
        └─ stop accepting submit()
        └─ put one None per worker at the END of the queue
        └─ join every worker

Because the pills sit behind every task already queued, each worker
finishes the backlog before it meets a None and exits. shutdown()
returns only after every in-flight and queued task has run.

=============================================================================
"""

import os
import threading
import queue
import time
import logging
from typing import Callable, Optional, Any, List
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


def default_worker_count() -> int:
    """One worker per CPU, or 1 when the count is unknown."""
    return os.cpu_count() or 1


class WorkerState(Enum):
    """Worker thread states, for monitoring."""
    IDLE = "idle"        # Waiting for task
    BUSY = "busy"        # Executing task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred function call: "call func(*args, **kwargs) later".

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        submitted_at: Time the task was queued.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)

    def __call__(self):
        return self.func(*self.args, **self.kwargs)


class Worker(threading.Thread):
    """
    Worker thread that processes tasks from the queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Worker Loop                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. task = queue.get()          (blocks while the queue is empty)  │
    │   2. task is None?  ──► exit                                         │
    │   3. task()                      (exceptions logged, never raised)  │
    │   4. queue.task_done()                                               │
    │   5. back to 1                                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int):
        """
        Initialize the worker.

        Args:
            task_queue: Queue to pull tasks from.
            worker_id: Identifier for this worker (for logging).
        """
        # daemon=True: a stuck task never keeps the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id

        self.state = WorkerState.IDLE

        # Metrics
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        """Main worker loop. Runs until a poison pill is received."""
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                # Keeps queue.join() accurate, pills included
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        """
        Execute a single task.

        Tasks are expected to handle their own failures. Anything that
        still escapes is logged here so the worker survives it.
        """
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task()
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} completed task in "
                f"{time.time() - start_time:.3f}s"
            )
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(
                f"Worker {self.worker_id} task failed after "
                f"{time.time() - start_time:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Fixed-size thread pool.

    Usage:
        with ThreadPool(num_workers=4) as pool:
            pool.submit(handle_connection, args=(conn,))
        # every submitted task has finished here

    or, explicitly:

        pool = ThreadPool()
        pool.start()
        pool.submit(handle_connection, args=(conn,))
        pool.shutdown(wait=True)
    """

    def __init__(self, num_workers: Optional[int] = None):
        """
        Initialize the thread pool.

        Args:
            num_workers: Number of worker threads. None means one per CPU.
        """
        if num_workers is None:
            num_workers = default_worker_count()
        if num_workers < 1:
            raise ValueError(f"num_workers must be at least 1, got {num_workers}")

        self.num_workers = num_workers

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue()
        self._workers: List[Worker] = []
        self._lock = threading.Lock()  # Guards _started/_shutdown against submit()
        self._started = False
        self._shutdown = False

    def start(self):
        """Start all workers. Calling start() twice is a no-op."""
        with self._lock:
            if self._started:
                return

            logger.info(f"Starting thread pool with {self.num_workers} workers")
            for worker_id in range(self.num_workers):
                worker = Worker(self._task_queue, worker_id)
                self._workers.append(worker)
                worker.start()

            self._started = True
            self._shutdown = False

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
    ):
        """
        Queue a task and return immediately.

        Args:
            func: The function to execute.
            args: Positional arguments for the function.
            kwargs: Keyword arguments for the function.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        with self._lock:
            if not self._started:
                raise RuntimeError("Thread pool not started")
            if self._shutdown:
                raise RuntimeError("Thread pool is shutting down")

            self._task_queue.put(Task(func=func, args=args, kwargs=kwargs or {}))

    def shutdown(self, wait: bool = True):
        """
        Stop the pool.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    shutdown() Flow                               │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   1. Reject new tasks                                           │
        │   2. One poison pill per worker, queued behind pending tasks    │
        │   3. If wait: join every worker                                 │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Args:
            wait: Block until every queued and running task has finished.
        """
        with self._lock:
            if not self._started or self._shutdown:
                return
            self._shutdown = True

            logger.info("Shutting down thread pool...")
            for _ in self._workers:
                self._task_queue.put(None)

        if wait:
            for worker in self._workers:
                worker.join()
            logger.info("Thread pool shutdown complete")

    def __enter__(self) -> "ThreadPool":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)
        return False

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def busy_workers(self) -> int:
        """Get count of busy workers."""
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        """Get count of idle workers."""
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def queue_size(self) -> int:
        """Get current task queue size."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counts."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "tasks": {
                "queued": self.queue_size,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
