"""
Exception types raised by the image stream pipeline.

Both task errors are local to the task that raised them: the pipeline logs and
records them in the BatchResult, and sibling tasks keep running.
"""


class ImageStreamError(Exception):
    """Base class for pipeline errors."""


class DownloadError(ImageStreamError):
    """Raised when an image cannot be downloaded or decoded."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to download {url}: {reason}")


class FilterError(ImageStreamError):
    """Raised when a filter cannot transform or persist an image."""

    def __init__(self, url: str, filter_name: str, reason: str):
        self.url = url
        self.filter_name = filter_name
        self.reason = reason
        super().__init__(f"Filter {filter_name} failed on {url}: {reason}")


def describe(exc: BaseException) -> str:
    """Short human-readable reason for an arbitrary exception."""
    return str(exc) or type(exc).__name__
