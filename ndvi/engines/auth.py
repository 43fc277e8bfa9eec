"""OAuth client-credentials token provider for Sentinel Hub."""

from __future__ import annotations

import logging
import time
from typing import Final

import httpx
from django.conf import settings

from ndvi.exceptions import (
    CredentialsMissingError,
    UpstreamAuthError,
    UpstreamTimeoutError,
    trim_snippet,
)
from ndvi.metrics import (
    ndvi_upstream_latency_seconds,
    ndvi_upstream_requests_total,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL: Final[str] = "https://services.sentinel-hub.com"


class SentinelHubTokenProvider:
    """Exchange a client id/secret pair for a short-lived bearer token.

    Every call performs exactly one request; tokens are neither cached nor
    persisted.
    """

    endpoint_name: Final[str] = "token"

    def __init__(
        self,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = client_id or getattr(
            settings, "SENTINELHUB_CLIENT_ID", ""
        )
        self.client_secret = client_secret or getattr(
            settings, "SENTINELHUB_CLIENT_SECRET", ""
        )
        self.base_url = (
            base_url
            or getattr(settings, "SENTINELHUB_BASE_URL", DEFAULT_BASE_URL)
        ).rstrip("/")
        self.token_url = f"{self.base_url}/oauth/token"
        self.timeout_seconds = timeout_seconds or float(
            getattr(settings, "NDVI_TOKEN_TIMEOUT_SECONDS", 10)
        )
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    async def fetch_token(self) -> str:
        if not self.configured:
            raise CredentialsMissingError(
                "Sentinel Hub credentials not configured."
            )

        data = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        started = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    self.token_url, data=data, headers=headers
                )
        except httpx.TimeoutException as exc:
            ndvi_upstream_requests_total.labels(
                endpoint=self.endpoint_name, outcome="timeout"
            ).inc()
            raise UpstreamTimeoutError(
                "Sentinel Hub token request timed out"
            ) from exc
        except httpx.RequestError as exc:
            ndvi_upstream_requests_total.labels(
                endpoint=self.endpoint_name, outcome="network"
            ).inc()
            raise UpstreamAuthError(
                f"Sentinel Hub token request failed: {exc.__class__.__name__}"
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
                "sentinelhub.token.failed status=%s body=%s",
                response.status_code,
                snippet or "<empty>",
            )
            raise UpstreamAuthError(
                "Failed to get access token from Sentinel Hub",
                status_code=response.status_code,
                snippet=snippet,
            )

        try:
            payload = response.json()
        except ValueError:
            payload = None
        token = (
            payload.get("access_token") if isinstance(payload, dict) else None
        )
        if not token:
            ndvi_upstream_requests_total.labels(
                endpoint=self.endpoint_name, outcome="error"
            ).inc()
            raise UpstreamAuthError(
                "Sentinel Hub token response missing access_token",
                status_code=response.status_code,
            )

        ndvi_upstream_requests_total.labels(
            endpoint=self.endpoint_name, outcome="success"
        ).inc()
        return str(token)

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return (
            "SentinelHubTokenProvider("
            f"client_id={self.client_id}, base_url={self.base_url}"
            ")"
        )
