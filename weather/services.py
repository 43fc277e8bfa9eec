"""Current-weather lookup with a short-lived response cache."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import lru_cache

from django.conf import settings
from django.core.cache import caches

from .engines.base import WeatherError, WeatherProvider
from .engines.openweathermap import OpenWeatherMapProvider
from .engines.types import WeatherPayload
from .metrics import (
    weather_cache_lookups_total,
    weather_upstream_latency_seconds,
    weather_upstream_requests_total,
)

logger = logging.getLogger(__name__)

CACHE_TTL_CURRENT = int(getattr(settings, "WEATHER_CACHE_TTL_CURRENT_S", 120))
MAX_LOCATION_LENGTH = 200


@dataclass(frozen=True)
class CacheKey:
    location: str
    units: str

    def as_string(self) -> str:
        normalized = "-".join(self.location.lower().split())
        return f"weather:current:{self.units}:{normalized}"


@lru_cache(maxsize=1)
def get_provider() -> WeatherProvider:
    return OpenWeatherMapProvider()


async def get_current_weather(location: str) -> WeatherPayload:
    """Upstream current-weather JSON for a location, cached briefly.

    Errors are never cached.
    """

    provider = get_provider()
    key = CacheKey(
        location=location,
        units=getattr(settings, "WEATHER_UNITS", "metric"),
    ).as_string()
    cache = caches["default"]
    cached = cache.get(key)
    if cached:
        weather_cache_lookups_total.labels(result="hit").inc()
        return cached
    weather_cache_lookups_total.labels(result="miss").inc()

    started = time.perf_counter()
    try:
        payload = await provider.current(location)
    except WeatherError as exc:
        weather_upstream_requests_total.labels(
            provider=provider.name, outcome=exc.__class__.__name__
        ).inc()
        raise
    finally:
        weather_upstream_latency_seconds.labels(
            provider=provider.name
        ).observe(time.perf_counter() - started)

    weather_upstream_requests_total.labels(
        provider=provider.name, outcome="success"
    ).inc()
    logger.info(
        "weather.current.fetched location=%s duration=%.3f",
        location,
        time.perf_counter() - started,
    )
    cache.set(key, payload, CACHE_TTL_CURRENT)
    return payload
