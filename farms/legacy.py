"""Parsers for the free-form polygon values of the legacy per-user tree.

These only run inside the one-time ``migrate_legacy_polygons`` command;
request handling reads the versioned columns on ``FarmPolygon``.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from datetime import date
from typing import Any

logger = logging.getLogger(__name__)

_JSON_ARRAY_RE = re.compile(r"\[.*\]", re.DOTALL)
_ISO_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ParseError(ValueError):
    """A legacy value could not be turned into the current schema."""


def _rectangle_from_csv(raw: str) -> list[list[float]]:
    try:
        values = [float(part.strip()) for part in raw.split(",")]
    except ValueError as exc:
        raise ParseError(
            f"Invalid bounding box format. Got: {raw[:50]}"
        ) from exc
    if len(values) < 4:
        raise ParseError(f"Invalid bounding box format. Got: {raw[:50]}")
    west, south, east, north = values[:4]
    return [
        [west, south],
        [east, south],
        [east, north],
        [west, north],
        [west, south],
    ]


def parse_legacy_bbox(raw: Any) -> list[list[float]]:
    """Return a ring from a JSON array string, a CSV list or a list.

    A CSV of at least four numbers is read as ``west,south,east,north`` and
    expanded to a closed rectangle.
    """

    if isinstance(raw, list):
        return raw
    if not isinstance(raw, str):
        raise ParseError(
            f"Unsupported bounding box type: {type(raw).__name__}"
        )

    cleaned = raw.strip()
    match = _JSON_ARRAY_RE.search(cleaned)
    candidate = match.group(0) if match else cleaned
    try:
        parsed = json.loads(candidate)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        return parsed

    if "," in cleaned:
        return _rectangle_from_csv(cleaned)
    raise ParseError(f"Invalid bounding box format. Got: {cleaned[:50]}")


def _entry_date(entry: Any) -> str | None:
    if isinstance(entry, str):
        return entry
    if not isinstance(entry, Mapping):
        return None
    lower = entry.get("date")
    upper = entry.get("Date")
    if lower and upper and lower != upper:
        logger.warning(
            "farms.legacy.date_conflict date=%s Date=%s", lower, upper
        )
    if lower:
        return lower
    if upper:
        return upper
    for value in entry.values():
        if isinstance(value, str) and _ISO_DAY_RE.match(value):
            return value
    return None


def extract_legacy_dates(raw: Any) -> list[date]:
    """Collect valid ``YYYY-MM-DD`` days, de-duplicated and sorted."""

    if raw is None:
        return []
    if isinstance(raw, str):
        entries: list[Any] = [raw]
    elif isinstance(raw, Mapping):
        entries = list(raw.values())
    elif isinstance(raw, list | tuple):
        entries = list(raw)
    else:
        raise ParseError(f"Unsupported dates type: {type(raw).__name__}")

    days: set[date] = set()
    for entry in entries:
        value = _entry_date(entry)
        if not isinstance(value, str) or not _ISO_DAY_RE.match(value):
            if value is not None:
                logger.warning("farms.legacy.invalid_date value=%s", value)
            continue
        try:
            days.add(date.fromisoformat(value))
        except ValueError:
            logger.warning("farms.legacy.invalid_date value=%s", value)
    return sorted(days)
