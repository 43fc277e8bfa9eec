from __future__ import annotations

from abc import ABC, abstractmethod

from .types import ProviderName, WeatherPayload


class WeatherError(Exception):
    """Base class for weather lookup failures."""

    status_code = 500


class WeatherConfigurationError(WeatherError):
    """The provider API key is not configured."""


class WeatherUpstreamError(WeatherError):
    """The provider answered with an error or not at all."""

    def __init__(self, message: str, *, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code


class WeatherProvider(ABC):
    """Abstract base for weather providers."""

    name: ProviderName

    @abstractmethod
    async def current(self, location: str) -> WeatherPayload:
        """Return current conditions for a free-text location."""
