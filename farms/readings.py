"""Normalize ground-station payloads that use older field names."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Final

# Canonical field -> accepted keys, first present wins.
READING_ALIASES: Final[dict[str, tuple[str, ...]]] = {
    "soil_temp": ("soil_temp", "soilTemp", "soilTemperature"),
    "flow_rate": ("flow_rate", "flowRate", "waterFlow", "flow"),
    "env_temp": ("env_temp", "environmentTemp", "envTemp", "temperature"),
    "humidity": ("humidity", "hum"),
    "ph": ("ph", "phValue", "pHValue"),
    "pressure": ("pressure", "atmosPressure", "atm_pressure"),
    "altitude": ("altitude", "alt"),
}


def _as_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def normalize_reading(payload: Mapping[str, Any]) -> dict[str, float | None]:
    """Map alias keys onto canonical reading fields.

    Missing or non-numeric values become None rather than zero.
    """

    normalized: dict[str, float | None] = {}
    for field, aliases in READING_ALIASES.items():
        normalized[field] = None
        for key in aliases:
            number = _as_number(payload.get(key))
            if number is not None:
                normalized[field] = number
                break
    return normalized
