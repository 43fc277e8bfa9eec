"""Push-based live views over markers, readings and alerts.

A subscription delivers a fresh snapshot to its callback whenever a
matching row is saved or deleted, and once on subscribe.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Callable
from types import TracebackType
from typing import Any, Final

from django.db.models.signals import post_delete, post_save

from ndvi.layers.surface import Marker

from .models import Alert, SensorReading, SiteMarker

logger = logging.getLogger(__name__)

MARKER_KINDS: Final[tuple[str, ...]] = (
    SiteMarker.GROUND_STATION,
    SiteMarker.TREE,
)
RECENT_ALERTS_LIMIT: Final[int] = 4

Receiver = Callable[..., None]


class Subscription:
    """Handle returned by ``subscribe_*``; ``close()`` is idempotent."""

    def __init__(self, receiver: Receiver, senders: tuple[type, ...]) -> None:
        self._receiver: Receiver | None = receiver
        self._senders = senders
        self._uid = f"feed-{uuid.uuid4().hex}"
        for sender in senders:
            post_save.connect(
                receiver, sender=sender, weak=False, dispatch_uid=self._uid
            )
            post_delete.connect(
                receiver, sender=sender, weak=False, dispatch_uid=self._uid
            )

    @property
    def closed(self) -> bool:
        return self._receiver is None

    def close(self) -> None:
        if self._receiver is None:
            return
        for sender in self._senders:
            post_save.disconnect(sender=sender, dispatch_uid=self._uid)
            post_delete.disconnect(sender=sender, dispatch_uid=self._uid)
        self._receiver = None

    def __enter__(self) -> Subscription:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def _valid_coordinate(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


def marker_snapshot(owner_id: int, kind: str) -> list[Marker]:
    rows = SiteMarker.objects.filter(owner_id=owner_id, kind=kind).order_by(
        "external_id"
    )
    return [
        Marker(
            id=row.external_id,
            kind=row.kind,
            lat=row.lat,
            long=row.long,
            score=row.score,
        )
        for row in rows
        if _valid_coordinate(row.lat) and _valid_coordinate(row.long)
    ]


def subscribe_markers(
    owner_id: int,
    kind: str,
    callback: Callable[[list[Marker]], None],
) -> Subscription:
    if kind not in MARKER_KINDS:
        raise ValueError(f"Unknown marker kind: {kind}")

    def _on_change(sender: type, instance: SiteMarker, **kwargs: Any) -> None:
        if instance.owner_id == owner_id and instance.kind == kind:
            callback(marker_snapshot(owner_id, kind))

    subscription = Subscription(_on_change, (SiteMarker,))
    callback(marker_snapshot(owner_id, kind))
    logger.debug("feeds.markers.subscribed owner=%s kind=%s", owner_id, kind)
    return subscription


def subscribe_latest_reading(
    station_id: int,
    callback: Callable[[SensorReading | None], None],
) -> Subscription:
    def _latest() -> SensorReading | None:
        return SensorReading.objects.filter(station_id=station_id).first()

    def _on_change(
        sender: type, instance: SensorReading, **kwargs: Any
    ) -> None:
        if instance.station_id == station_id:
            callback(_latest())

    subscription = Subscription(_on_change, (SensorReading,))
    callback(_latest())
    return subscription


def subscribe_alerts(
    owner_id: int,
    callback: Callable[[list[Alert]], None],
    *,
    limit: int = RECENT_ALERTS_LIMIT,
) -> Subscription:
    def _recent() -> list[Alert]:
        return list(Alert.objects.filter(owner_id=owner_id)[:limit])

    def _on_change(sender: type, instance: Alert, **kwargs: Any) -> None:
        if instance.owner_id == owner_id:
            callback(_recent())

    subscription = Subscription(_on_change, (Alert,))
    callback(_recent())
    return subscription
