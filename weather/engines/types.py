from __future__ import annotations

from typing import Any, Literal

ProviderName = Literal["openweathermap"]

# Upstream body, returned to clients unchanged.
WeatherPayload = dict[str, Any]
