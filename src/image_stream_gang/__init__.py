"""
Image Stream Gang

Downloads batches of images concurrently and applies a set of filters to
every image, storing one output per image and filter.
"""

__version__ = "0.1.0"

# Decode HEIC/HEIF downloads when pillow-heif is installed
try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
except ImportError:
    pass

from .config import PipelineConfig
from .core import (
    BatchPipeline,
    BatchResult,
    DownloadError,
    FilterError,
    FilterInvoker,
    FilterSpec,
    ImageCache,
    ImageFetcher,
    StreamDriver,
    WorkerPool,
    parse_filter_specs,
    run_stream,
)


def main():
    """Entry point for the image-stream-gang command."""
    from .cli import main as cli_main
    return cli_main()


__all__ = [
    "PipelineConfig",
    "BatchPipeline",
    "BatchResult",
    "DownloadError",
    "FilterError",
    "FilterInvoker",
    "FilterSpec",
    "ImageCache",
    "ImageFetcher",
    "StreamDriver",
    "WorkerPool",
    "parse_filter_specs",
    "run_stream",
]
