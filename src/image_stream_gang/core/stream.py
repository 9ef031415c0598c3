"""
stream.py: feed successive URL batches through the batch pipeline.

Batches run strictly one after another: batch N+1 is not pulled from the
source until every download and filter of batch N has resolved. Only the
work inside a batch runs concurrently.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

from .filters import FilterInvoker, FilterSpec
from .image import TaskFailure
from .image_cache import ImageCache
from .image_fetcher import ImageFetcher
from .pipeline import BatchPipeline, BatchResult
from .workers import WorkerPool
from ..config import PipelineConfig
from ..utils.log_utils import get_logger

logger = get_logger(__name__)


@dataclass
class StreamStats:
    """Running totals across all batches of one stream."""
    batches: int = 0
    urls: int = 0
    cached: int = 0
    fetched: int = 0
    filtered: int = 0
    failures: List[TaskFailure] = field(default_factory=list)
    elapsed: float = 0.0

    def add(self, result: BatchResult) -> None:
        self.batches += 1
        self.urls += len(result.urls)
        self.cached += len(result.cached)
        self.fetched += len(result.fetched)
        self.filtered += len(result.outcomes)
        self.failures.extend(result.failures)


class StreamDriver:
    """Runs BatchPipeline over every batch of a source, then the completion hook."""

    def __init__(self, pipeline: BatchPipeline) -> None:
        self.pipeline = pipeline
        self.stats = StreamStats()

    async def run(
        self,
        batches: Iterable[Sequence[str]],
        filters: Sequence[FilterSpec],
        on_complete: Callable[[], None],
    ) -> None:
        """
        Process each batch in turn and call ``on_complete`` once the source is
        exhausted. Batches are pulled lazily, one at a time.
        """
        start_time = time.time()
        filters = tuple(filters)
        for batch in batches:
            number = self.stats.batches + 1
            logger.info(f"Batch {number}: {len(batch)} URL(s), {len(filters)} filter(s)")
            result = await self.pipeline.process_batch(batch, filters)
            self.stats.add(result)
            logger.info(
                f"Batch {number} done in {result.elapsed:.2f}s: "
                f"{len(result.cached)} cached, {len(result.fetched)} fetched, "
                f"{len(result.outcomes)} filtered, {len(result.failures)} failed"
            )
        self.stats.elapsed = time.time() - start_time
        on_complete()

    def get_stats(self) -> StreamStats:
        return self.stats


async def run_stream_async(
    config: PipelineConfig,
    batches: Iterable[Sequence[str]],
    filters: Sequence[FilterSpec],
    on_complete: Optional[Callable[[], None]] = None,
) -> StreamStats:
    """
    Build the pool, fetcher, invoker and cache for one run and drive the stream.
    """
    cache = ImageCache(config.output_dir, [spec.name for spec in filters])
    if config.clear:
        cache.clear()
    invoker = FilterInvoker(config.output_dir)

    with WorkerPool(config.max_workers) as pool:
        async with ImageFetcher(pool, timeout=config.timeout, user_agent=config.user_agent) as fetcher:
            pipeline = BatchPipeline(pool, fetcher, invoker, cache.is_cached)
            driver = StreamDriver(pipeline)
            await driver.run(batches, filters, on_complete or (lambda: None))
    return driver.get_stats()


# Convenience function for easy usage
def run_stream(
    config: PipelineConfig,
    batches: Iterable[Sequence[str]],
    filters: Sequence[FilterSpec],
    on_complete: Optional[Callable[[], None]] = None,
) -> StreamStats:
    """
    Run the whole stream to completion on a fresh event loop.

    Returns:
        Totals for the run, including every recorded task failure.
    """
    return asyncio.run(run_stream_async(config, batches, filters, on_complete))
