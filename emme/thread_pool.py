"""
Fixed-size worker pool for the matrix assembly.

Tasks are plain no-argument callables. Each one is paired with a
``concurrent.futures.Future`` that is handed back to the producer at once;
workers take tasks in FIFO order and run every task to completion. An
exception raised by a task is stored in its future and comes back out of
``future.result()``.

The pool is constructed explicitly and passed to whoever needs it, there is
no process-wide instance.
"""
import logging
import os
import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable

from emme.errors import InvalidArgument

logger = logging.getLogger(__name__)

# Put on the queue once per worker to stop it
_SHUTDOWN = object()


@dataclass
class Task:
    """Deferred call plus the future its outcome is delivered to."""
    fn: Callable[[], Any]
    future: Future = field(default_factory=Future)

    def run(self):
        # Never cancelled once queued, so the future is always RUNNING here
        if not self.future.set_running_or_notify_cancel():
            return
        try:
            result = self.fn()
        except BaseException as exc:
            self.future.set_exception(exc)
        else:
            self.future.set_result(result)


class DedicatedThreadPool:
    """
    Pool of `num_threads` daemon threads sharing one FIFO queue.

    Args:
        num_threads: Number of workers. Defaults to os.cpu_count().
        name: Prefix for the worker thread names.
    """

    def __init__(self, num_threads=None, name="emme-worker"):
        if num_threads is None:
            num_threads = os.cpu_count() or 1
        if num_threads < 1:
            raise InvalidArgument(f"num_threads must be at least 1, got {num_threads}")

        self._queue = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._workers = []
        for k in range(num_threads):
            worker = threading.Thread(target=self._work, name=f"{name}-{k}", daemon=True)
            worker.start()
            self._workers.append(worker)
        logger.debug("Started thread pool with %d workers", num_threads)

    @property
    def num_threads(self):
        return len(self._workers)

    def queue_task(self, fn):
        """
        Enqueue `fn` and return the future that will hold its result.

        Never blocks the caller.
        """
        task = Task(fn)
        with self._lock:
            if self._closed:
                raise RuntimeError("cannot queue a task on a pool that has been shut down")
            self._queue.put(task)
        return task.future

    def _work(self):
        while True:
            task = self._queue.get()
            if task is _SHUTDOWN:
                break
            task.run()

    def shutdown(self, wait=True):
        """Let the queued tasks drain, then stop every worker."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for _ in self._workers:
                self._queue.put(_SHUTDOWN)
        if wait:
            for worker in self._workers:
                worker.join()
        logger.debug("Thread pool shut down")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(wait=True)
        return False
