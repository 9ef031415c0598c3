import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple, TypeVar

from ..utils.log_utils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class WorkerPool:
    """
    Bounded worker pool shared by fetch and filter tasks.

    Every task submitted through ``submit`` holds one of ``max_workers`` slots
    while it runs, so the bound covers downloads and filters together with no
    priority between them. Blocking work (decoding, pixel transforms, disk
    writes) runs on a thread pool with as many threads as there are slots.

    The pool is created once by the application and handed to the pipeline by
    reference. Waiting on a set of tasks is done by the caller through
    ``gather`` and never occupies a slot, so a small pool cannot starve.
    Slots belong to the event loop that submits; a pool reused under a new
    loop (another ``asyncio.run``) starts with a fresh set of slots.
    """

    def __init__(self, max_workers: int = 8) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self.executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="image-stream"
        )

        # Semaphore for limiting concurrently running tasks, one per event loop
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self.submitted_count = 0
        self.completed_count = 0
        self.active_count = 0

    def submit(self, coro_fn: Callable[..., Awaitable[T]], *args: Any) -> "asyncio.Task[T]":
        """
        Schedule ``coro_fn(*args)`` to run once a slot is free.

        Must be called from the event loop thread. The returned task resolves
        to the coroutine's result or raises its exception.
        """
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._loop is not loop:
            self._semaphore = asyncio.Semaphore(self.max_workers)
            self._loop = loop
        self.submitted_count += 1
        return asyncio.ensure_future(self._run_in_slot(self._semaphore, coro_fn, *args))

    async def _run_in_slot(self, semaphore: asyncio.Semaphore, coro_fn: Callable[..., Awaitable[T]], *args: Any) -> T:
        try:
            async with semaphore:
                self.active_count += 1
                try:
                    return await coro_fn(*args)
                finally:
                    self.active_count -= 1
        finally:
            self.completed_count += 1

    async def run_blocking(self, fn: Callable[..., T], *args: Any) -> T:
        """Run a blocking callable on the pool's threads."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, fn, *args)

    @staticmethod
    async def gather(tasks: Iterable["asyncio.Future[T]"]) -> List[Any]:
        """
        Wait for every task to resolve.

        Returns one entry per task in submission order: the task's result, or
        the exception it raised.
        """
        tasks = list(tasks)
        if not tasks:
            return []
        return await asyncio.gather(*tasks, return_exceptions=True)

    def get_progress(self) -> Tuple[int, int]:
        """Get current progress (completed, submitted)."""
        return self.completed_count, self.submitted_count

    def shutdown(self, wait: bool = True) -> None:
        logger.debug(f"Shutting down worker pool ({self.completed_count}/{self.submitted_count} tasks done)")
        self.executor.shutdown(wait=wait)

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()
