from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

ndvi_upstream_requests_total = Counter(
    "ndvi_upstream_requests_total",
    "Count of upstream Sentinel Hub requests",
    labelnames=["endpoint", "outcome"],
)

ndvi_upstream_latency_seconds = Histogram(
    "ndvi_upstream_latency_seconds",
    "Latency of upstream Sentinel Hub requests",
    labelnames=["endpoint"],
    buckets=(0.1, 0.3, 0.5, 1, 2, 5, 10, 20, 30),
)

ndvi_cache_hit_total = Counter(
    "ndvi_cache_hit_total",
    "Cache hits by NDVI layer",
    labelnames=["layer"],
)

ndvi_image_requests_total = Counter(
    "ndvi_image_requests_total",
    "NDVI image endpoint outcomes",
    labelnames=["outcome"],
)

ndvi_overlay_layers = Gauge(
    "ndvi_overlay_layers",
    "NDVI overlays currently attached to map surfaces",
)
