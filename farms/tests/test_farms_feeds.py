# ruff: noqa: S101
from __future__ import annotations

import math
import secrets

import pytest
from django.contrib.auth import get_user_model

from farms.feeds import (
    marker_snapshot,
    subscribe_alerts,
    subscribe_latest_reading,
    subscribe_markers,
)
from farms.models import Alert, SensorReading, SiteMarker

pytestmark = pytest.mark.django_db


def _user(username: str = "grower"):
    return get_user_model().objects.create_user(
        username=username, password=secrets.token_urlsafe(12)
    )


def _station(owner, external_id: str = "gs-1") -> SiteMarker:
    return SiteMarker.objects.create(
        owner=owner,
        kind=SiteMarker.GROUND_STATION,
        external_id=external_id,
        lat=-1.2,
        long=36.8,
    )


def test_marker_snapshot_skips_non_finite_coordinates() -> None:
    owner = _user()
    _station(owner, "gs-1")
    SiteMarker.objects.create(
        owner=owner,
        kind=SiteMarker.GROUND_STATION,
        external_id="gs-2",
        lat=math.inf,
        long=36.8,
    )

    snapshot = marker_snapshot(owner.id, SiteMarker.GROUND_STATION)

    assert [marker.id for marker in snapshot] == ["gs-1"]


def test_subscribe_markers_pushes_snapshots_until_closed() -> None:
    owner = _user()
    other = _user("other")
    received: list[list[str]] = []

    subscription = subscribe_markers(
        owner.id,
        SiteMarker.TREE,
        lambda markers: received.append([m.id for m in markers]),
    )
    assert received == [[]]

    tree = SiteMarker.objects.create(
        owner=owner, kind=SiteMarker.TREE, external_id="t-1", lat=1, long=2
    )
    _station(owner)
    SiteMarker.objects.create(
        owner=other, kind=SiteMarker.TREE, external_id="t-9", lat=1, long=2
    )
    assert received == [[], ["t-1"]]

    tree.delete()
    assert received[-1] == []

    subscription.close()
    subscription.close()
    assert subscription.closed
    SiteMarker.objects.create(
        owner=owner, kind=SiteMarker.TREE, external_id="t-2", lat=1, long=2
    )
    assert len(received) == 3


def test_subscribe_markers_rejects_unknown_kind() -> None:
    with pytest.raises(ValueError):
        subscribe_markers(1, "barn", lambda markers: None)


def test_latest_reading_feed() -> None:
    owner = _user()
    station = _station(owner)
    other_station = _station(owner, "gs-2")
    received: list[float | None] = []

    with subscribe_latest_reading(
        station.id,
        lambda reading: received.append(
            None if reading is None else reading.ph
        ),
    ):
        SensorReading.objects.create(station=station, ph=6.5)
        SensorReading.objects.create(station=other_station, ph=9.0)
        SensorReading.objects.create(station=station, ph=7.0)

    SensorReading.objects.create(station=station, ph=8.0)
    assert received == [None, 6.5, 7.0]


def test_alert_feed_keeps_most_recent() -> None:
    owner = _user()
    received: list[list[str]] = []

    with subscribe_alerts(
        owner.id,
        lambda alerts: received.append([a.message for a in alerts]),
        limit=2,
    ):
        for n in range(3):
            Alert.objects.create(owner=owner, message=f"alert {n}")

    assert received[0] == []
    assert received[-1] == ["alert 2", "alert 1"]
