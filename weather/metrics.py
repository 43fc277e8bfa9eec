from __future__ import annotations

from prometheus_client import Counter, Histogram

weather_upstream_requests_total = Counter(
    "weather_upstream_requests_total",
    "OpenWeatherMap requests by outcome",
    labelnames=["provider", "outcome"],
)

weather_upstream_latency_seconds = Histogram(
    "weather_upstream_latency_seconds",
    "Latency of OpenWeatherMap requests",
    labelnames=["provider"],
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10),
)

weather_cache_lookups_total = Counter(
    "weather_cache_lookups_total",
    "Current-weather cache lookups",
    labelnames=["result"],
)
