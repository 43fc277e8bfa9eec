"""Decoded raster handles backing map overlays."""

from __future__ import annotations

import base64
import io
import threading
from typing import ClassVar

from PIL import Image, UnidentifiedImageError
from PIL.Image import DecompressionBombError

from ndvi.exceptions import ImageLoadError
from ndvi.raster.base import RasterImage


class ImageHandle:
    """A decoded overlay image that must be released exactly once.

    A class-level counter tracks handles that are still open so callers can
    assert nothing leaks when layers are replaced or removed.
    """

    _open_handles: ClassVar[int] = 0
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(
        self, image: Image.Image, content: bytes, content_type: str
    ) -> None:
        self._image: Image.Image | None = image
        self.content = content
        self.content_type = content_type
        self.size = image.size
        with ImageHandle._lock:
            ImageHandle._open_handles += 1

    @classmethod
    def open_count(cls) -> int:
        with cls._lock:
            return cls._open_handles

    @property
    def closed(self) -> bool:
        return self._image is None

    @property
    def image(self) -> Image.Image:
        if self._image is None:
            raise ImageLoadError("Image handle already released.")
        return self._image

    def data_uri(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"

    def release(self) -> None:
        image, self._image = self._image, None
        if image is None:
            return
        image.close()
        with ImageHandle._lock:
            ImageHandle._open_handles -= 1

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        state = "closed" if self.closed else "open"
        return f"ImageHandle(size={self.size}, {state})"


def decode_image(raster: RasterImage) -> ImageHandle:
    """Decode raster bytes into an RGBA handle; blocking, run off-loop."""

    try:
        with Image.open(io.BytesIO(raster.content)) as source:
            source.load()
            image = source.convert("RGBA")
    except (
        UnidentifiedImageError,
        DecompressionBombError,
        OSError,
        ValueError,
    ) as exc:
        raise ImageLoadError(
            f"Could not decode NDVI image: {exc.__class__.__name__}"
        ) from exc
    return ImageHandle(image, raster.content, raster.content_type)
