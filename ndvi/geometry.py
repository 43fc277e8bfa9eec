"""Area-of-interest validation and derived rectangles."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from .engines.base import BBox
from .exceptions import BoundsError

Coordinate = tuple[float, float]
Corners = tuple[Coordinate, Coordinate, Coordinate, Coordinate]

MIN_RING_POINTS = 4


def _to_coordinate(raw: Any, index: int) -> Coordinate:
    if not isinstance(raw, list | tuple) or len(raw) < 2:
        raise BoundsError(f"Point {index} must be a [lon, lat] pair.")
    try:
        lon = float(raw[0])
        lat = float(raw[1])
    except (TypeError, ValueError) as exc:
        raise BoundsError(f"Point {index} is not numeric.") from exc
    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise BoundsError(f"Point {index} is not finite.")
    if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
        raise BoundsError(f"Point {index} is outside WGS84 range.")
    return lon, lat


@dataclass(frozen=True)
class AreaOfInterest:
    """Closed ring of (lon, lat) pairs in WGS84 decimal degrees."""

    ring: tuple[Coordinate, ...]

    @classmethod
    def from_coordinates(cls, coordinates: Sequence[Any]) -> AreaOfInterest:
        if not isinstance(coordinates, list | tuple):
            raise BoundsError("Polygon must be a sequence of [lon, lat].")
        if len(coordinates) < MIN_RING_POINTS:
            raise BoundsError(
                "Invalid polygon - needs at least 4 coordinates."
            )
        ring = tuple(
            _to_coordinate(raw, idx) for idx, raw in enumerate(coordinates)
        )
        if ring[0] != ring[-1]:
            raise BoundsError("Polygon ring must be closed (first == last).")
        area = cls(ring=ring)
        area.bounds()
        return area

    @classmethod
    def from_bbox(cls, bbox: BBox) -> AreaOfInterest:
        west, south = float(bbox.west), float(bbox.south)
        east, north = float(bbox.east), float(bbox.north)
        return cls.from_coordinates(
            [
                [west, south],
                [east, south],
                [east, north],
                [west, north],
                [west, south],
            ]
        )

    def bounds(self) -> tuple[float, float, float, float]:
        """Return (min_lon, min_lat, max_lon, max_lat)."""

        lons = [point[0] for point in self.ring]
        lats = [point[1] for point in self.ring]
        min_lon, max_lon = min(lons), max(lons)
        min_lat, max_lat = min(lats), max(lats)
        if min_lon >= max_lon or min_lat >= max_lat:
            raise BoundsError("Invalid polygon bounds.")
        return min_lon, min_lat, max_lon, max_lat

    @property
    def bbox(self) -> BBox:
        min_lon, min_lat, max_lon, max_lat = self.bounds()
        return BBox(
            south=Decimal(str(min_lat)),
            west=Decimal(str(min_lon)),
            north=Decimal(str(max_lat)),
            east=Decimal(str(max_lon)),
        )

    def overlay_corners(self) -> Corners:
        """Top-left, top-right, bottom-right, bottom-left."""

        min_lon, min_lat, max_lon, max_lat = self.bounds()
        return (
            (min_lon, max_lat),
            (max_lon, max_lat),
            (max_lon, min_lat),
            (min_lon, min_lat),
        )

    def as_lists(self) -> list[list[float]]:
        return [[lon, lat] for lon, lat in self.ring]


def day_window_utc(day: date) -> tuple[str, str]:
    """Return the [00:00:00Z, 23:59:59Z] window for a calendar day."""

    start = datetime.combine(day, time.min)
    end = datetime.combine(day, time(23, 59, 59))
    return start.isoformat() + "Z", end.isoformat() + "Z"
