from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ndvi.geometry import AreaOfInterest


@dataclass(frozen=True)
class RasterImage:
    """Encoded image returned by a raster engine."""

    content: bytes
    content_type: str = "image/png"


class NdviRasterEngine(Protocol):
    """Interface for fetching rendered NDVI overlays."""

    async def fetch_ndvi_image(
        self, area: AreaOfInterest, day: date
    ) -> RasterImage:
        """Return the rendered NDVI image for one polygon and day."""
