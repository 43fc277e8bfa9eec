"""Engine abstractions for NDVI providers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ndvi.geometry import AreaOfInterest


@dataclass(frozen=True)
class BBox:
    """Normalized bounding box for NDVI requests (WGS84 decimal degrees)."""

    south: Decimal
    west: Decimal
    north: Decimal
    east: Decimal


@dataclass(frozen=True)
class StatInterval:
    """Mean NDVI for one aggregation bucket; None when no valid pixels."""

    interval: str
    mean_value: float | None


class NDVIStatisticsEngine(Protocol):
    """Interface for engines producing chart-ready NDVI intervals."""

    async def fetch_stats(
        self,
        area: AreaOfInterest,
        start: date,
        end: date,
    ) -> list[StatInterval]:
        """Return one interval per bucket, in chronological order."""
