"""
image.py: value types shared by the fetch and filter stages.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple, Union

from PIL import Image as PILImage

from .errors import ImageStreamError

# One unit of work pulled from the URL source
UrlBatch = Tuple[str, ...]


@dataclass(frozen=True)
class Image:
    """A fully decoded image and the URL it was downloaded from.

    The pixel buffer is shared by every filter applied to this image, so
    filters must work on a copy and never modify ``pixels`` in place.
    """
    source_url: str
    pixels: PILImage.Image = field(compare=False, repr=False)

    @property
    def size(self) -> Tuple[int, int]:
        return self.pixels.size


@dataclass(frozen=True)
class FilterOutcome:
    """Result of applying one filter to one image."""
    source_url: str
    filter_name: str
    output_path: Path


@dataclass(frozen=True)
class TaskFailure:
    """A task that ended with a terminal error."""
    stage: str  # "fetch" or "filter"
    url: str
    error: Union[ImageStreamError, BaseException]
    filter_name: str = ""
