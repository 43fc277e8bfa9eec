from __future__ import annotations

import logging
from typing import Any, cast

import httpx
from django.conf import settings

from .base import (
    WeatherConfigurationError,
    WeatherProvider,
    WeatherUpstreamError,
)
from .types import ProviderName, WeatherPayload

logger = logging.getLogger(__name__)


class OpenWeatherMapProvider(WeatherProvider):
    """OpenWeatherMap current-weather passthrough.

    Settings are read per call so the API key can be rotated without a
    restart; explicit constructor arguments win.
    """

    name: ProviderName = "openweathermap"

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        units: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._units = units
        self._timeout = timeout
        self._transport = transport

    @property
    def api_key(self) -> str:
        return self._api_key or cast(
            str, getattr(settings, "OPENWEATHER_API_KEY", "")
        )

    @property
    def base_url(self) -> str:
        return self._base_url or cast(
            str,
            getattr(
                settings,
                "OPENWEATHER_BASE_URL",
                "https://api.openweathermap.org/data/2.5/weather",
            ),
        )

    @property
    def units(self) -> str:
        return self._units or getattr(settings, "WEATHER_UNITS", "metric")

    @property
    def timeout(self) -> float:
        return self._timeout or float(
            getattr(settings, "WEATHER_REQUEST_TIMEOUT_SECONDS", 10)
        )

    async def current(self, location: str) -> WeatherPayload:
        if not self.api_key:
            raise WeatherConfigurationError(
                "OPENWEATHER_API_KEY is not set in environment variables."
            )
        params = {"q": location, "appid": self.api_key, "units": self.units}
        return await self._request(params)

    async def _request(self, params: dict[str, Any]) -> WeatherPayload:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(self.base_url, params=params)
        except httpx.TimeoutException as exc:
            raise WeatherUpstreamError(
                "No response received from OpenWeatherMap API",
                status_code=504,
            ) from exc
        except httpx.RequestError as exc:
            raise WeatherUpstreamError(
                "No response received from OpenWeatherMap API"
            ) from exc

        if not response.is_success:
            detail = self._error_message(response)
            logger.warning(
                "weather.openweathermap.failed status=%s message=%s",
                response.status_code,
                detail,
            )
            raise WeatherUpstreamError(
                f"OpenWeatherMap API error: {detail}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise WeatherUpstreamError(
                "Unexpected OpenWeatherMap response shape", status_code=502
            ) from exc
        if not isinstance(data, dict):
            raise WeatherUpstreamError(
                "Unexpected OpenWeatherMap response shape", status_code=502
            )
        return data

    def _error_message(self, response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return "Unknown error"
        message = body.get("message") if isinstance(body, dict) else None
        return str(message) if message else "Unknown error"
