from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Final

import httpx
from django.conf import settings

from ndvi.engines.auth import DEFAULT_BASE_URL, SentinelHubTokenProvider
from ndvi.engines.evalscript import NDVI_IMAGE_EVALSCRIPT
from ndvi.exceptions import (
    UpstreamServerError,
    UpstreamTimeoutError,
    trim_snippet,
    upstream_error_for_status,
)
from ndvi.geometry import AreaOfInterest, day_window_utc
from ndvi.metrics import (
    ndvi_upstream_latency_seconds,
    ndvi_upstream_requests_total,
)

from .base import NdviRasterEngine, RasterImage

logger = logging.getLogger(__name__)

CRS_WGS84: Final[str] = "http://www.opengis.net/def/crs/EPSG/0/4326"
DEFAULT_RASTER_SIZE: Final[int] = 512


class SentinelHubRasterEngine(NdviRasterEngine):
    """Render NDVI overlays via the Sentinel Hub Process API."""

    engine_name: Final[str] = "sentinelhub"
    endpoint_name: Final[str] = "process"

    def __init__(
        self,
        *,
        token_provider: SentinelHubTokenProvider | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        size: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (
            base_url
            or getattr(settings, "SENTINELHUB_BASE_URL", DEFAULT_BASE_URL)
        ).rstrip("/")
        self.process_url = f"{self.base_url}/api/v1/process"
        self.timeout_seconds = timeout_seconds or float(
            getattr(settings, "NDVI_IMAGE_TIMEOUT_SECONDS", 30)
        )
        self.size = size or int(
            getattr(settings, "NDVI_RASTER_SIZE", DEFAULT_RASTER_SIZE)
        )
        self._transport = transport
        self.token_provider = token_provider or SentinelHubTokenProvider(
            base_url=self.base_url, transport=transport
        )

    async def fetch_ndvi_image(
        self, area: AreaOfInterest, day: date
    ) -> RasterImage:
        token = await self.token_provider.fetch_token()
        payload = self._build_payload(area, day)
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "image/png",
        }
        started = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    self.process_url, json=payload, headers=headers
                )
        except httpx.TimeoutException as exc:
            ndvi_upstream_requests_total.labels(
                endpoint=self.endpoint_name, outcome="timeout"
            ).inc()
            raise UpstreamTimeoutError(
                "Sentinel Hub image request timed out"
            ) from exc
        except httpx.RequestError as exc:
            ndvi_upstream_requests_total.labels(
                endpoint=self.endpoint_name, outcome="network"
            ).inc()
            raise UpstreamServerError(
                f"Sentinel Hub image request failed: {exc.__class__.__name__}"
            ) from exc
        finally:
            ndvi_upstream_latency_seconds.labels(
                endpoint=self.endpoint_name
            ).observe(time.monotonic() - started)

        if not response.is_success:
            snippet = self._response_snippet(response)
            ndvi_upstream_requests_total.labels(
                endpoint=self.endpoint_name, outcome="error"
            ).inc()
            logger.warning(
                "sentinelhub.process.failed status=%s day=%s body=%s",
                response.status_code,
                day.isoformat(),
                snippet or "<empty>",
            )
            raise upstream_error_for_status(
                response.status_code,
                "Failed to fetch NDVI image from Sentinel Hub",
                snippet,
            )

        content_type = (
            response.headers.get("content-type", "")
            .split(";")[0]
            .strip()
            .lower()
        )
        if not response.content or not content_type.startswith("image/"):
            ndvi_upstream_requests_total.labels(
                endpoint=self.endpoint_name, outcome="invalid_body"
            ).inc()
            raise UpstreamServerError(
                "Sentinel Hub returned no image data",
                status_code=response.status_code,
                snippet=self._response_snippet(response),
            )

        ndvi_upstream_requests_total.labels(
            endpoint=self.endpoint_name, outcome="success"
        ).inc()
        logger.info(
            "sentinelhub.process.ok day=%s bytes=%s",
            day.isoformat(),
            len(response.content),
        )
        return RasterImage(content=response.content, content_type=content_type)

    def _build_payload(
        self, area: AreaOfInterest, day: date
    ) -> dict[str, Any]:
        time_from, time_to = day_window_utc(day)
        return {
            "input": {
                "bounds": {
                    "geometry": {
                        "type": "Polygon",
                        "coordinates": [area.as_lists()],
                    },
                    "properties": {"crs": CRS_WGS84},
                },
                "data": [
                    {
                        "type": "sentinel-2-l2a",
                        "dataFilter": {
                            "timeRange": {"from": time_from, "to": time_to},
                        },
                    }
                ],
            },
            "output": {
                "width": self.size,
                "height": self.size,
                "responses": [
                    {"identifier": "default", "format": {"type": "image/png"}}
                ],
            },
            "evalscript": NDVI_IMAGE_EVALSCRIPT,
        }

    def _response_snippet(self, response: httpx.Response) -> str | None:
        content_type = response.headers.get("content-type", "")
        if content_type.startswith("image/"):
            return None
        return trim_snippet(response.text)
