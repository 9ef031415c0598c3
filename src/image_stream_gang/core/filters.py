"""
filters.py: image filters and the invoker that applies them.

A FilterSpec names one transform from a closed set. FilterInvoker turns each
spec into an OutputFilter once, which applies the transform to a copy of the
shared image and writes the result to <output_dir>/<filter name>/<file name>.

Example:
    specs = parse_filter_specs("grayscale,blur:radius=4")
    invoker = FilterInvoker(Path("out"))
    outcome = invoker.apply(specs[0], image)
"""

import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Tuple

from PIL import Image as PILImage
from PIL import ImageFilter, ImageOps

from .errors import FilterError, describe
from .image import FilterOutcome, Image
from .image_fetcher import file_name_for_url
from ..utils.log_utils import get_logger

logger = get_logger(__name__)

Transform = Callable[[PILImage.Image, Dict[str, float]], PILImage.Image]

# Formats that cannot store an alpha channel or palette
_RGB_ONLY_SUFFIXES = {".jpg", ".jpeg"}


def _null(img: PILImage.Image, params: Dict[str, float]) -> PILImage.Image:
    return img.copy()


def _grayscale(img: PILImage.Image, params: Dict[str, float]) -> PILImage.Image:
    return ImageOps.grayscale(img)


def _blur(img: PILImage.Image, params: Dict[str, float]) -> PILImage.Image:
    return img.filter(ImageFilter.GaussianBlur(radius=params.get("radius", 2.0)))


def _sharpen(img: PILImage.Image, params: Dict[str, float]) -> PILImage.Image:
    return img.filter(ImageFilter.SHARPEN)


def _contour(img: PILImage.Image, params: Dict[str, float]) -> PILImage.Image:
    return img.convert("RGB").filter(ImageFilter.CONTOUR)


def _invert(img: PILImage.Image, params: Dict[str, float]) -> PILImage.Image:
    return ImageOps.invert(img.convert("RGB"))


def _sepia(img: PILImage.Image, params: Dict[str, float]) -> PILImage.Image:
    gray = ImageOps.grayscale(img)
    return ImageOps.colorize(gray, black="#2e1f0f", white="#fff0d4", mid="#a0785a")


TRANSFORMS: Dict[str, Transform] = {
    "null": _null,
    "grayscale": _grayscale,
    "blur": _blur,
    "sharpen": _sharpen,
    "contour": _contour,
    "invert": _invert,
    "sepia": _sepia,
}

# Parameters each transform reads; anything else is rejected
PARAMS: Dict[str, FrozenSet[str]] = {
    "blur": frozenset({"radius"}),
}


@dataclass(frozen=True)
class FilterSpec:
    """Immutable descriptor of one named image transform.

    ``name`` doubles as the output directory name, so two specs of the same
    kind with different parameters must be given different names.
    """
    name: str
    kind: str
    params: Tuple[Tuple[str, float], ...] = ()

    def __post_init__(self) -> None:
        if self.kind not in TRANSFORMS:
            raise ValueError(
                f"Unknown filter kind '{self.kind}'. Available: {', '.join(sorted(TRANSFORMS))}"
            )
        if not self.name or "/" in self.name or self.name in {".", ".."}:
            raise ValueError(f"Invalid filter name: {self.name!r}")
        allowed = PARAMS.get(self.kind, frozenset())
        unknown = sorted(key for key, _ in self.params if key not in allowed)
        if unknown:
            raise ValueError(
                f"Unknown parameter(s) for filter '{self.kind}': {', '.join(unknown)}. "
                f"Accepted: {', '.join(sorted(allowed)) or 'none'}"
            )

    @classmethod
    def of(cls, kind: str, name: str = "", **params: float) -> "FilterSpec":
        return cls(name=name or kind, kind=kind, params=tuple(sorted(params.items())))

    def param_dict(self) -> Dict[str, float]:
        return dict(self.params)


def parse_filter_specs(text: str) -> List[FilterSpec]:
    """
    Parse a comma-separated filter list such as ``"grayscale,blur:radius=4"``.

    Parameters follow a colon as ``key=value`` pairs joined by ``;``. A spec
    with parameters is named ``<kind>-<values>`` so it gets its own output
    directory. Duplicate names raise ValueError.
    """
    specs: List[FilterSpec] = []
    seen = set()
    for chunk in text.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        kind, _, raw_params = chunk.partition(":")
        params: Dict[str, float] = {}
        for pair in raw_params.split(";"):
            if not pair.strip():
                continue
            key, sep, value = pair.partition("=")
            if not sep:
                raise ValueError(f"Invalid filter parameter '{pair}' in '{chunk}'")
            try:
                params[key.strip()] = float(value)
            except ValueError:
                raise ValueError(f"Filter parameter '{key.strip()}' must be numeric, got '{value}'")
        kind = kind.strip().lower()
        name = kind
        if params:
            name = kind + "-" + "-".join(f"{v:g}" for _, v in sorted(params.items()))
        spec = FilterSpec.of(kind, name=name, **params)
        if spec.name in seen:
            raise ValueError(f"Duplicate filter '{spec.name}'")
        seen.add(spec.name)
        specs.append(spec)
    return specs


class OutputFilter:
    """A transform decorated with persistence of its result."""

    def __init__(self, spec: FilterSpec, output_dir: Path):
        self.spec = spec
        self.transform = TRANSFORMS[spec.kind]
        self.params = spec.param_dict()
        self.directory = Path(output_dir) / spec.name

    @property
    def name(self) -> str:
        return self.spec.name

    def output_path_for(self, url: str) -> Path:
        return self.directory / file_name_for_url(url)

    def apply(self, image: Image) -> FilterOutcome:
        """Transform ``image`` and store the result, returning where it went."""
        result = self.transform(image.pixels, self.params)
        dest = self.output_path_for(image.source_url)
        if dest.suffix.lower() in _RGB_ONLY_SUFFIXES and result.mode not in ("RGB", "L"):
            result = result.convert("RGB")
        self.directory.mkdir(parents=True, exist_ok=True)
        # Only complete files ever appear under the final name
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".", suffix=".tmp")
        os.close(fd)
        try:
            result.save(tmp_name, format=PILImage.registered_extensions().get(dest.suffix.lower()))
            os.replace(tmp_name, dest)
        except BaseException:
            os.unlink(tmp_name)
            raise
        logger.debug(f"Stored {dest}")
        return FilterOutcome(source_url=image.source_url, filter_name=self.name, output_path=dest)


class FilterInvoker:
    """
    Applies a FilterSpec to an Image, persisting the filtered result.

    One OutputFilter is built per spec on first use and reused for every image
    after that. ``apply`` may run on any number of worker threads at once.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self._filters: Dict[FilterSpec, OutputFilter] = {}
        self._lock = threading.Lock()

    def filter_for(self, spec: FilterSpec) -> OutputFilter:
        with self._lock:
            decorated = self._filters.get(spec)
            if decorated is None:
                decorated = OutputFilter(spec, self.output_dir)
                self._filters[spec] = decorated
            return decorated

    def apply(self, spec: FilterSpec, image: Image) -> FilterOutcome:
        """
        Apply one filter to one image.

        Raises:
            FilterError: if the transform or saving the result fails.
        """
        decorated = self.filter_for(spec)
        try:
            return decorated.apply(image)
        except Exception as e:
            raise FilterError(image.source_url, spec.name, describe(e)) from e
