"""Bounded thread pool for blocking crawl work.

The async orchestrator hands each blocking unit (a whole shop crawl, a proxy
harvest) to this pool and awaits the answer on the returned future. Inside
the pool the unit runs fully synchronously on one thread.
"""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

import structlog

from pricewatch.core.exceptions import CrawlerError, TaskError, WorkerPoolSaturated

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class WorkerPool:
    """Explicit worker pool with admission control.

    At most ``max_workers`` units run at once and at most ``max_pending``
    units are admitted (running plus waiting for a thread). A submission
    beyond that raises WorkerPoolSaturated right away, so back-pressure is
    visible to the caller instead of piling up in an unbounded queue.
    """

    def __init__(
        self,
        max_workers: int = 4,
        max_pending: Optional[int] = None,
        thread_name_prefix: str = "crawl-worker",
    ):
        """Initialize worker pool.

        Args:
            max_workers: Number of worker threads
            max_pending: Admission limit, defaults to twice the worker count
            thread_name_prefix: Name prefix of the worker threads
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self.max_pending = max_pending if max_pending is not None else max_workers * 2
        if self.max_pending < max_workers:
            raise ValueError("max_pending must not be below max_workers")
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        )
        self._pending = 0
        self._lock = threading.Lock()
        self._closed = False

    @property
    def pending(self) -> int:
        """Units admitted and not finished yet."""
        return self._pending

    @property
    def saturated(self) -> bool:
        return self._pending >= self.max_pending

    async def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``fn(*args, **kwargs)`` on a worker thread and await its result.

        Crawler errors raised by ``fn`` propagate unchanged; any other
        exception is reported as TaskError.

        Raises:
            WorkerPoolSaturated: If ``max_pending`` units are already in flight
            RuntimeError: If the pool was shut down
        """
        if self._closed:
            raise RuntimeError("Worker pool is shut down")
        if self.saturated:
            logger.warning(
                "worker_pool_saturated",
                pending=self._pending,
                max_pending=self.max_pending,
            )
            raise WorkerPoolSaturated(self._pending, self.max_pending)

        task_name = getattr(fn, "__qualname__", repr(fn))
        with self._lock:
            self._pending += 1
        try:
            future = self._executor.submit(self._run, task_name, fn, args, kwargs)
        except BaseException:
            self._release()
            raise
        # Released when the unit finishes, even if the awaiting task was cancelled
        future.add_done_callback(lambda _: self._release())
        return await asyncio.wrap_future(future)

    def _release(self) -> None:
        with self._lock:
            self._pending -= 1

    @staticmethod
    def _run(task_name: str, fn: Callable[..., T], args: tuple, kwargs: dict) -> T:
        try:
            return fn(*args, **kwargs)
        except CrawlerError:
            raise
        except Exception as e:
            logger.error("worker_task_crashed", task=task_name, error=str(e), exc_info=True)
            raise TaskError(task_name, e) from e

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and release the worker threads."""
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=wait)
        logger.info("worker_pool_stopped")

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
