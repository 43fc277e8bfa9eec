from __future__ import annotations

import hashlib
import json
import logging
import time
from datetime import date, timedelta
from functools import lru_cache
from typing import Any

from asgiref.sync import async_to_sync
from django.conf import settings
from django.core.cache import caches
from rest_framework.exceptions import ValidationError

from .engines.base import NDVIStatisticsEngine, StatInterval
from .geometry import AreaOfInterest
from .metrics import ndvi_cache_hit_total, ndvi_image_requests_total
from .raster.base import RasterImage
from .raster.registry import get_engine, load_engine

logger = logging.getLogger(__name__)

CACHE_TTL_STATS = int(getattr(settings, "NDVI_CACHE_TTL_STATS_SECONDS", 21600))
MAX_STATS_RANGE_DAYS = int(getattr(settings, "NDVI_MAX_STATS_RANGE_DAYS", 370))


@lru_cache(maxsize=1)
def get_stats_engine() -> NDVIStatisticsEngine:
    """Return the configured statistics engine instance."""

    return load_engine(
        "NDVI_STATS_ENGINE_PATH",
        "ndvi.engines.sentinelhub.SentinelHubStatisticsEngine",
    )


def validate_stats_range(start: date, end: date) -> None:
    if start > end:
        raise ValidationError("start must be on or before end.")
    if (end - start) > timedelta(days=MAX_STATS_RANGE_DAYS):
        raise ValidationError(
            "Requested date range exceeds NDVI_MAX_STATS_RANGE_DAYS."
        )


def stats_cache_key(area: AreaOfInterest, start: date, end: date) -> str:
    normalized = json.dumps(
        {
            "ring": area.as_lists(),
            "start": start.isoformat(),
            "end": end.isoformat(),
        },
        sort_keys=True,
    )
    digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()
    return f"ndvi:cache:stats:{digest}"


def serialize_intervals(intervals: list[StatInterval]) -> list[dict[str, Any]]:
    return [
        {"interval": item.interval, "mean_value": item.mean_value}
        for item in intervals
    ]


async def fetch_ndvi_stats(
    area: AreaOfInterest,
    start: date,
    end: date,
    *,
    engine: NDVIStatisticsEngine | None = None,
) -> list[StatInterval]:
    """Chart-ready intervals for an area, served from cache when possible.

    Failed upstream calls are never cached.
    """

    validate_stats_range(start, end)
    cache = caches["default"]
    key = stats_cache_key(area, start, end)
    cached = cache.get(key)
    if cached is not None:
        ndvi_cache_hit_total.labels(layer="stats").inc()
        return [StatInterval(**item) for item in cached]

    stats_engine = engine if engine is not None else get_stats_engine()
    started = time.perf_counter()
    intervals = await stats_engine.fetch_stats(area, start, end)
    logger.info(
        "ndvi.stats.fetched start=%s end=%s intervals=%s duration=%.3f",
        start.isoformat(),
        end.isoformat(),
        len(intervals),
        time.perf_counter() - started,
    )
    cache.set(key, serialize_intervals(intervals), CACHE_TTL_STATS)
    return intervals


def get_ndvi_stats(
    area: AreaOfInterest, start: date, end: date
) -> list[StatInterval]:
    return async_to_sync(fetch_ndvi_stats)(area, start, end)


def render_ndvi_image(area: AreaOfInterest, day: date) -> RasterImage:
    """Fetch the rendered overlay for one polygon and day."""

    try:
        image = async_to_sync(get_engine().fetch_ndvi_image)(area, day)
    except Exception as exc:
        ndvi_image_requests_total.labels(
            outcome=exc.__class__.__name__
        ).inc()
        raise
    ndvi_image_requests_total.labels(outcome="success").inc()
    return image
