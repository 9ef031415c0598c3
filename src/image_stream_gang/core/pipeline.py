#!/usr/bin/env python3
"""
pipeline.py: run one batch of URLs through download and filtering.

BatchPipeline skips URLs the cache already knows, downloads the rest
concurrently, waits for every download, then applies every filter to every
downloaded image concurrently and waits for all of those too. Both waits are
plain gathers on the orchestrating coroutine, so no pool slot is ever held
while waiting on other tasks.

Failed downloads and failed filters are logged and recorded on the returned
BatchResult. They never abort sibling tasks and process_batch never raises
because of them.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Protocol, Sequence, Tuple

from .errors import DownloadError, FilterError, describe
from .filters import FilterSpec
from .image import FilterOutcome, Image, TaskFailure, UrlBatch
from .workers import WorkerPool
from ..utils.log_utils import get_logger

logger = get_logger(__name__)


class Fetcher(Protocol):
    def fetch(self, url: str) -> Awaitable[Image]: ...


class Invoker(Protocol):
    def apply(self, spec: FilterSpec, image: Image) -> FilterOutcome: ...


@dataclass
class BatchResult:
    """Outcome of one batch, used to confirm completion and report failures."""
    urls: UrlBatch
    cached: List[str] = field(default_factory=list)
    fetched: List[str] = field(default_factory=list)
    outcomes: List[FilterOutcome] = field(default_factory=list)
    failures: List[TaskFailure] = field(default_factory=list)
    fetch_tasks: int = 0
    filter_tasks: int = 0
    elapsed: float = 0.0

    @property
    def fetch_failures(self) -> List[TaskFailure]:
        return [f for f in self.failures if f.stage == "fetch"]

    @property
    def filter_failures(self) -> List[TaskFailure]:
        return [f for f in self.failures if f.stage == "filter"]

    @property
    def ok(self) -> bool:
        return not self.failures


class BatchPipeline:
    """
    Drives one batch through fetch, filter fan-out and join.

    Args:
        pool: shared worker pool that runs every fetch and filter task.
        fetcher: object whose async ``fetch(url)`` returns an Image.
        invoker: object whose blocking ``apply(spec, image)`` filters and stores.
        is_cached: predicate telling which URLs to skip. Called once per URL
            per batch, possibly from several threads at once.
    """

    def __init__(
        self,
        pool: WorkerPool,
        fetcher: Fetcher,
        invoker: Invoker,
        is_cached: Callable[[str], bool],
    ) -> None:
        self.pool = pool
        self.fetcher = fetcher
        self.invoker = invoker
        self.is_cached = is_cached

    async def process_batch(self, urls: Sequence[str], filters: Sequence[FilterSpec]) -> BatchResult:
        """
        Download every uncached URL and apply every filter to every image.

        Returns only after all fetch tasks and all filter tasks submitted for
        this batch have resolved, successfully or not.
        """
        start_time = time.time()
        urls = tuple(urls)
        filters = tuple(filters)
        result = BatchResult(urls=urls)
        if not urls:
            return result

        kept = await self._uncached(urls, result)

        # First rendezvous: every download resolved
        fetch_tasks = [self.pool.submit(self._fetch, url) for url in kept]
        result.fetch_tasks = len(fetch_tasks)
        images: List[Image] = []
        for url, fetched in zip(kept, await self.pool.gather(fetch_tasks)):
            if isinstance(fetched, BaseException):
                self._record_failure(result, TaskFailure("fetch", url, fetched))
            else:
                images.append(fetched)
                result.fetched.append(url)

        # Second rendezvous: every (image, filter) pair resolved
        pairs: List[Tuple[Image, FilterSpec]] = []
        filter_tasks: List["asyncio.Task[FilterOutcome]"] = []
        for image in images:
            for spec, task in self._apply_filters(image, filters):
                pairs.append((image, spec))
                filter_tasks.append(task)
        result.filter_tasks = len(filter_tasks)
        for (image, spec), outcome in zip(pairs, await self.pool.gather(filter_tasks)):
            if isinstance(outcome, BaseException):
                self._record_failure(
                    result, TaskFailure("filter", image.source_url, outcome, filter_name=spec.name)
                )
            else:
                result.outcomes.append(outcome)

        result.elapsed = time.time() - start_time
        return result

    async def _uncached(self, urls: UrlBatch, result: BatchResult) -> List[str]:
        checks = await self.pool.gather(
            asyncio.ensure_future(self.pool.run_blocking(self.is_cached, url)) for url in urls
        )
        kept = []
        for url, cached in zip(urls, checks):
            if isinstance(cached, BaseException):
                logger.warning(f"Cache check failed for {url}, downloading anyway: {describe(cached)}")
                cached = False
            if cached:
                result.cached.append(url)
            else:
                kept.append(url)
        if result.cached:
            logger.info(f"Skipping {len(result.cached)} cached image(s)")
        return kept

    def _apply_filters(self, image: Image, filters: Tuple[FilterSpec, ...]):
        """Submit one filter task per spec for ``image``."""
        for spec in filters:
            logger.debug(f"Applying filter {spec.name} on {image.source_url}")
            yield spec, self.pool.submit(self._filter, spec, image)

    async def _fetch(self, url: str) -> Image:
        try:
            return await self.fetcher.fetch(url)
        except DownloadError:
            raise
        except Exception as e:
            raise DownloadError(url, describe(e)) from e

    async def _filter(self, spec: FilterSpec, image: Image) -> FilterOutcome:
        try:
            return await self.pool.run_blocking(self.invoker.apply, spec, image)
        except FilterError:
            raise
        except Exception as e:
            raise FilterError(image.source_url, spec.name, describe(e)) from e

    @staticmethod
    def _record_failure(result: BatchResult, failure: TaskFailure) -> None:
        logger.error(str(failure.error))
        result.failures.append(failure)
