"""
image_cache.py - output-directory cache for filtered images.

A URL counts as cached once any filter has already stored an output for it,
so re-running the stream over the same manifest skips finished images.

Example:
    cache = ImageCache(Path("filtered_images"), ["null", "grayscale"])
    if not cache.is_cached(url):
        ...
"""

import shutil
from pathlib import Path
from typing import Dict, Iterable, Any

from .image_fetcher import file_name_for_url
from ..utils.log_utils import get_logger

logger = get_logger(__name__)


class ImageCache:
    """Answers whether an image was already filtered into the output directory."""

    def __init__(self, output_dir: Path, filter_names: Iterable[str]):
        self.output_dir = Path(output_dir)
        self.filter_names = list(filter_names)

    def _filter_dirs(self) -> list[Path]:
        return [self.output_dir / name for name in self.filter_names]

    def is_cached(self, url: str) -> bool:
        """Return True if an output for ``url`` exists in any filter directory.

        Only reads the filesystem, so it is safe to call from several threads.
        """
        file_name = file_name_for_url(url)
        for directory in self._filter_dirs():
            if (directory / file_name).is_file():
                logger.debug(f"{url} already cached in {directory.name}")
                return True
        return False

    def clear(self) -> int:
        """
        Remove every filter output directory.

        Returns:
            Number of files removed
        """
        removed = 0
        for directory in self._filter_dirs():
            if not directory.is_dir():
                continue
            removed += sum(1 for p in directory.rglob('*') if p.is_file())
            shutil.rmtree(directory)
        if removed:
            logger.info(f"Cleared {removed} cached images from {self.output_dir}")
        return removed

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        per_filter: Dict[str, int] = {}
        for name, directory in zip(self.filter_names, self._filter_dirs()):
            per_filter[name] = (
                sum(1 for p in directory.iterdir() if p.is_file()) if directory.is_dir() else 0
            )
        return {
            "output_dir": str(self.output_dir),
            "total_files": sum(per_filter.values()),
            "per_filter": per_filter,
        }
