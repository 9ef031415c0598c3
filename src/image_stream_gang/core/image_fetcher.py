"""
image_fetcher.py: download and decode a single image.

HTTP(S) URLs are fetched with a shared aiohttp session; ``file://`` URLs and
plain paths are read from disk. Decoding happens on the worker pool's threads
and fully loads the pixel data before the Image is handed to any filter.
"""

import asyncio
import hashlib
import io
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

import aiohttp
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from .errors import DownloadError, describe
from .image import Image
from .workers import WorkerPool
from ..utils.log_utils import get_logger

logger = get_logger(__name__)

IMAGE_EXTS = {'.jpg', '.jpeg', '.png', '.gif', '.bmp', '.tif', '.tiff', '.webp'}
DEFAULT_SUFFIX = '.png'


def file_name_for_url(url: str) -> str:
    """
    Return the local file name used for the image at ``url``.

    This is the last path segment of the URL with a short hash of the full
    URL added to the stem, so two URLs sharing a basename never share an
    output file. URLs without a usable segment are named by the hash alone;
    names without a known image extension get ``.png`` appended.
    """
    digest = hashlib.sha256(url.encode('utf-8')).hexdigest()
    path = unquote(urlparse(url).path)
    name = path.rstrip('/').rsplit('/', 1)[-1]
    if not name or name in {'.', '..'}:
        return digest[:16] + DEFAULT_SUFFIX
    stem, suffix = name, Path(name).suffix
    if suffix.lower() in IMAGE_EXTS:
        stem = name[:-len(suffix)]
    else:
        suffix = DEFAULT_SUFFIX
    return f"{stem}_{digest[:10]}{suffix}"


def decode_image(url: str, data: bytes) -> Image:
    """Decode raw bytes into an Image, raising DownloadError on bad data."""
    if not data:
        raise DownloadError(url, "empty response")
    try:
        with PILImage.open(io.BytesIO(data)) as img:
            img.load()
            if img.mode not in ("RGB", "RGBA", "L"):
                has_alpha = img.mode in ("LA", "PA") or "transparency" in img.info
                pixels = img.convert("RGBA" if has_alpha else "RGB")
            else:
                pixels = img.copy()
    except (UnidentifiedImageError, PILImage.DecompressionBombError, OSError, ValueError) as e:
        raise DownloadError(url, f"cannot decode image: {describe(e)}") from e
    return Image(source_url=url, pixels=pixels)


def _local_path(url: str) -> Optional[Path]:
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return Path(url2pathname(unquote(parsed.path)))
    if parsed.scheme == "":
        return Path(url)
    return None


def _read_file(url: str, path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise DownloadError(url, describe(e)) from e


class ImageFetcher:
    """
    Downloads images for the pipeline.

    Use as an async context manager so the HTTP session is opened and closed
    with the run. ``fetch`` keeps no per-call state on the instance and is
    safe to call from many tasks at once.
    """

    def __init__(
        self,
        pool: WorkerPool,
        timeout: float = 30.0,
        user_agent: str = "image-stream-gang/0.1",
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.pool = pool
        self.timeout = timeout
        self.user_agent = user_agent
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "ImageFetcher":
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": self.user_agent},
            )
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def fetch(self, url: str) -> Image:
        """
        Download and decode the image at ``url``.

        Raises:
            DownloadError: on network failure, an HTTP error status or undecodable data.
        """
        path = _local_path(url)
        if path is not None:
            data = await self.pool.run_blocking(_read_file, url, path)
        else:
            data = await self._download(url)
        image = await self.pool.run_blocking(decode_image, url, data)
        logger.debug(f"Fetched {url} ({image.size[0]}x{image.size[1]})")
        return image

    async def _download(self, url: str) -> bytes:
        if self._session is None:
            raise RuntimeError("ImageFetcher must be used inside 'async with'")
        try:
            async with self._session.get(url) as response:
                if response.status >= 400:
                    raise DownloadError(url, f"HTTP {response.status}")
                return await response.read()
        except asyncio.TimeoutError as e:
            raise DownloadError(url, "timed out") from e
        except aiohttp.ClientError as e:
            raise DownloadError(url, describe(e)) from e
