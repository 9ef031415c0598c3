"""
url_source.py: lazy sources of URL batches.

A manifest is a text file with one URL per line. Blank lines separate
batches and lines starting with ``#`` are comments:

    # first batch
    https://example.com/a.jpg
    https://example.com/b.png

    https://example.com/c.jpg
"""

from itertools import islice
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from .image import UrlBatch
from ..utils.log_utils import get_logger

logger = get_logger(__name__)

_IMAGE_ROOT = "https://raw.githubusercontent.com/python-pillow/Pillow/main/Tests/images"

DEFAULT_URL_BATCHES: List[UrlBatch] = [
    (
        f"{_IMAGE_ROOT}/hopper.jpg",
        f"{_IMAGE_ROOT}/hopper.png",
        f"{_IMAGE_ROOT}/flower.jpg",
    ),
    (
        f"{_IMAGE_ROOT}/flower2.jpg",
        f"{_IMAGE_ROOT}/hopper.gif",
        f"{_IMAGE_ROOT}/hopper.bmp",
    ),
]


def chunked(urls: Iterable[str], batch_size: int) -> Iterator[UrlBatch]:
    """Yield successive tuples of at most ``batch_size`` URLs."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    it = iter(urls)
    while True:
        batch = tuple(islice(it, batch_size))
        if not batch:
            return
        yield batch


def _iter_manifest_groups(path: Path) -> Iterator[UrlBatch]:
    current: List[str] = []
    with path.open(encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if line.startswith("#"):
                continue
            if not line:
                if current:
                    yield tuple(current)
                    current = []
                continue
            current.append(line)
    if current:
        yield tuple(current)


def iter_manifest_batches(path: Path, batch_size: Optional[int] = None) -> Iterator[UrlBatch]:
    """
    Lazily read URL batches from a manifest file.

    Args:
        path: manifest file
        batch_size: if given, regroup all URLs into batches of this size
            instead of using the blank-line grouping of the file.
    """
    path = Path(path)
    logger.info(f"Reading URL batches from {path}")
    groups = _iter_manifest_groups(path)
    if batch_size is None:
        yield from groups
    else:
        yield from chunked((url for group in groups for url in group), batch_size)
