"""Sentinel Hub NDVI statistics engine (time-series aggregation)."""

from __future__ import annotations

import asyncio
import calendar
import json
import logging
import math
import time
from datetime import date, timedelta
from typing import Any, Final

import httpx
from django.conf import settings

from ndvi.exceptions import (
    UpstreamServerError,
    UpstreamTimeoutError,
    trim_snippet,
    upstream_error_for_status,
)
from ndvi.geometry import AreaOfInterest
from ndvi.metrics import (
    ndvi_upstream_latency_seconds,
    ndvi_upstream_requests_total,
)

from .auth import DEFAULT_BASE_URL, SentinelHubTokenProvider
from .base import NDVIStatisticsEngine, StatInterval
from .evalscript import NDVI_STATS_EVALSCRIPT

logger = logging.getLogger(__name__)

CRS_WGS84: Final[str] = "http://www.opengis.net/def/crs/EPSG/0/4326"
STATS_RESOLUTION_PX: Final[int] = 256


def _bucket_end(cursor: date) -> date:
    if cursor.day <= 15:
        return cursor.replace(day=15)
    last_day = calendar.monthrange(cursor.year, cursor.month)[1]
    return cursor.replace(day=last_day)


def semi_monthly_buckets(start: date, end: date) -> list[tuple[date, date]]:
    """Split [start, end] into 1st-15th / 16th-month-end buckets.

    The first and last buckets are clipped to the requested range.
    """

    if start > end:
        raise ValueError("start must be on or before end.")
    buckets: list[tuple[date, date]] = []
    cursor = start
    while cursor <= end:
        bucket_end = min(_bucket_end(cursor), end)
        buckets.append((cursor, bucket_end))
        cursor = bucket_end + timedelta(days=1)
    return buckets


def interval_label(bucket_start: date, bucket_end: date) -> str:
    return f"{bucket_start.isoformat()} - {bucket_end.isoformat()}"


def _to_mean(raw: Any) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


class SentinelHubStatisticsEngine(NDVIStatisticsEngine):
    """Fetch masked mean NDVI per bucket from the Statistics API."""

    endpoint_name: Final[str] = "statistics"

    def __init__(
        self,
        *,
        token_provider: SentinelHubTokenProvider | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (
            base_url
            or getattr(settings, "SENTINELHUB_BASE_URL", DEFAULT_BASE_URL)
        ).rstrip("/")
        self.statistics_url = f"{self.base_url}/api/v1/statistics"
        self.timeout_seconds = timeout_seconds or float(
            getattr(settings, "NDVI_STATS_TIMEOUT_SECONDS", 20)
        )
        self._transport = transport
        self.token_provider = token_provider or SentinelHubTokenProvider(
            base_url=self.base_url, transport=transport
        )

    async def fetch_stats(
        self,
        area: AreaOfInterest,
        start: date,
        end: date,
    ) -> list[StatInterval]:
        buckets = semi_monthly_buckets(start, end)
        token = await self.token_provider.fetch_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client, asyncio.TaskGroup() as group:
                tasks = [
                    group.create_task(
                        self._fetch_bucket_mean(
                            client, headers, area, bucket_start, bucket_end
                        )
                    )
                    for bucket_start, bucket_end in buckets
                ]
        except ExceptionGroup as failures:
            # Sibling buckets are cancelled; report the first failure.
            first = failures.exceptions[0]
            raise first from first.__cause__
        means = [task.result() for task in tasks]
        return [
            StatInterval(
                interval=interval_label(bucket_start, bucket_end),
                mean_value=mean,
            )
            for (bucket_start, bucket_end), mean in zip(
                buckets, means, strict=True
            )
        ]

    async def _fetch_bucket_mean(
        self,
        client: httpx.AsyncClient,
        headers: dict[str, str],
        area: AreaOfInterest,
        bucket_start: date,
        bucket_end: date,
    ) -> float | None:
        payload = self._build_statistics_payload(
            area=area, start=bucket_start, end=bucket_end
        )
        started = time.monotonic()
        try:
            response = await client.post(
                self.statistics_url, json=payload, headers=headers
            )
        except httpx.TimeoutException as exc:
            ndvi_upstream_requests_total.labels(
                endpoint=self.endpoint_name, outcome="timeout"
            ).inc()
            raise UpstreamTimeoutError(
                "Sentinel Hub statistics request timed out"
            ) from exc
        except httpx.RequestError as exc:
            ndvi_upstream_requests_total.labels(
                endpoint=self.endpoint_name, outcome="network"
            ).inc()
            raise UpstreamServerError(
                "Sentinel Hub statistics request failed: "
                f"{exc.__class__.__name__}"
            ) from exc
        finally:
            ndvi_upstream_latency_seconds.labels(
                endpoint=self.endpoint_name
            ).observe(time.monotonic() - started)

        if not response.is_success:
            snippet = trim_snippet(response.text)
            ndvi_upstream_requests_total.labels(
                endpoint=self.endpoint_name, outcome="error"
            ).inc()
            logger.warning(
                "sentinelhub.statistics.failed status=%s body=%s",
                response.status_code,
                snippet or "<empty>",
            )
            raise upstream_error_for_status(
                response.status_code,
                "Failed to fetch NDVI statistics from Sentinel Hub",
                snippet,
            )

        ndvi_upstream_requests_total.labels(
            endpoint=self.endpoint_name, outcome="success"
        ).inc()
        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamServerError(
                "Sentinel Hub statistics response is not JSON",
                status_code=response.status_code,
            ) from exc
        return self._parse_statistics_response(body)

    def _build_statistics_payload(
        self,
        *,
        area: AreaOfInterest,
        start: date,
        end: date,
    ) -> dict[str, Any]:
        span_days = (end - start).days + 1
        payload: dict[str, Any] = {
            "input": {
                "bounds": {
                    "geometry": {
                        "type": "Polygon",
                        "coordinates": [area.as_lists()],
                    },
                    "properties": {"crs": CRS_WGS84},
                },
                "data": [{"type": "sentinel-2-l2a"}],
            },
            "aggregation": {
                "timeRange": {
                    "from": f"{start.isoformat()}T00:00:00Z",
                    "to": f"{(end + timedelta(days=1)).isoformat()}T00:00:00Z",
                },
                "aggregationInterval": {"of": f"P{span_days}D"},
                "width": STATS_RESOLUTION_PX,
                "height": STATS_RESOLUTION_PX,
                "evalscript": NDVI_STATS_EVALSCRIPT,
            },
            "calculations": {"default": {}},
        }
        logger.debug("sentinelhub.statistics payload=%s", json.dumps(payload))
        return payload

    def _parse_statistics_response(self, data: Any) -> float | None:
        items = data.get("data", []) if isinstance(data, dict) else []
        for item in items:
            if not isinstance(item, dict) or item.get("error"):
                continue
            outputs = item.get("outputs", {})
            output = outputs.get("ndvi") or outputs.get("default") or {}
            bands = output.get("bands") or output.get("statistics") or {}
            band_stats: dict[str, Any] = {}
            if isinstance(bands, dict):
                band = (
                    bands.get("B0")
                    or bands.get("ndvi")
                    or bands.get("NDVI")
                    or {}
                )
                if isinstance(band, dict):
                    band_stats = band.get("stats") or band
            sample_count = band_stats.get("sampleCount")
            no_data_count = band_stats.get("noDataCount")
            if (
                sample_count is not None
                and no_data_count is not None
                and sample_count == no_data_count
            ):
                return None
            return _to_mean(band_stats.get("mean"))
        return None

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return (
            "SentinelHubStatisticsEngine("
            f"base_url={self.base_url}, timeout={self.timeout_seconds}"
            ")"
        )
