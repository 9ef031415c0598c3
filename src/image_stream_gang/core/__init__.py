"""
Core functionality for downloading and filtering image streams.
"""

from .errors import ImageStreamError, DownloadError, FilterError
from .image import Image, FilterOutcome, TaskFailure, UrlBatch
from .workers import WorkerPool
from .image_fetcher import ImageFetcher, file_name_for_url
from .filters import FilterSpec, FilterInvoker, OutputFilter, parse_filter_specs
from .image_cache import ImageCache
from .pipeline import BatchPipeline, BatchResult
from .stream import StreamDriver, StreamStats, run_stream, run_stream_async
from .url_source import DEFAULT_URL_BATCHES, chunked, iter_manifest_batches

__all__ = [
    "ImageStreamError",
    "DownloadError",
    "FilterError",
    "Image",
    "FilterOutcome",
    "TaskFailure",
    "UrlBatch",
    "WorkerPool",
    "ImageFetcher",
    "file_name_for_url",
    "FilterSpec",
    "FilterInvoker",
    "OutputFilter",
    "parse_filter_specs",
    "ImageCache",
    "BatchPipeline",
    "BatchResult",
    "StreamDriver",
    "StreamStats",
    "run_stream",
    "run_stream_async",
    "DEFAULT_URL_BATCHES",
    "chunked",
    "iter_manifest_batches",
]
