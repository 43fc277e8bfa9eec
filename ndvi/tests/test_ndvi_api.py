# ruff: noqa: S101
from __future__ import annotations

import secrets
from datetime import date

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import caches
from rest_framework.test import APIClient

from farms.models import LEGACY_SCHEMA_VERSION, FarmPolygon, SiteMarker
from ndvi import services
from ndvi.exceptions import (
    CredentialsMissingError,
    UpstreamAuthError,
    UpstreamRequestError,
    UpstreamServerError,
    UpstreamTimeoutError,
)
from ndvi.geometry import AreaOfInterest
from ndvi.tests.fakes import PNG_BYTES, FakeRasterEngine, FakeStatsEngine

RING = [[0, 0], [0, 1], [1, 1], [1, 0], [0, 0]]

pytestmark = pytest.mark.django_db


class RaisingEngine:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    async def fetch_ndvi_image(self, area: AreaOfInterest, day: date):
        raise self.exc

    async def fetch_stats(self, area: AreaOfInterest, start: date, end: date):
        raise self.exc


@pytest.fixture(autouse=True)
def _clear_cache() -> None:
    caches["default"].clear()


@pytest.fixture
def raster_engine(monkeypatch) -> FakeRasterEngine:
    engine = FakeRasterEngine()
    monkeypatch.setattr(services, "get_engine", lambda: engine)
    monkeypatch.setattr("ndvi.layers.overlay.get_engine", lambda: engine)
    return engine


@pytest.fixture
def stats_engine(monkeypatch) -> FakeStatsEngine:
    engine = FakeStatsEngine()
    monkeypatch.setattr(services, "get_stats_engine", lambda: engine)
    return engine


def _user(username: str = "grower"):
    return get_user_model().objects.create_user(
        username=username, password=secrets.token_urlsafe(12)
    )


def test_image_endpoint_returns_png(raster_engine: FakeRasterEngine) -> None:
    client = APIClient()

    resp = client.post(
        "/api/sentinelhub-01",
        {"polygon": RING, "date": "2023-06-01"},
        format="json",
    )

    assert resp.status_code == 200
    assert resp["Content-Type"] == "image/png"
    assert resp["Cache-Control"] == "no-store"
    assert resp.content == PNG_BYTES
    area, day = raster_engine.calls[0]
    assert area.as_lists() == [[float(x), float(y)] for x, y in RING]
    assert day == date(2023, 6, 1)


def test_image_endpoint_rejects_open_ring(
    raster_engine: FakeRasterEngine,
) -> None:
    client = APIClient()

    resp = client.post(
        "/api/sentinelhub-01",
        {"polygon": RING[:-1], "date": "2023-06-01"},
        format="json",
    )

    assert resp.status_code == 400
    assert resp.json()["status"] == 1
    assert "polygon" in resp.json()["errors"]
    assert raster_engine.calls == []


@pytest.mark.parametrize(
    ("exc", "status_code"),
    [
        (CredentialsMissingError("credentials missing"), 500),
        (UpstreamAuthError("denied", status_code=401), 401),
        (UpstreamAuthError("denied", status_code=403), 403),
        (UpstreamAuthError("token failed"), 502),
        (UpstreamRequestError("bad", status_code=400, snippet="geom"), 400),
        (UpstreamServerError("down", status_code=503), 502),
        (UpstreamTimeoutError("slow"), 504),
    ],
)
def test_image_endpoint_maps_failures(
    monkeypatch, exc: Exception, status_code: int
) -> None:
    monkeypatch.setattr(services, "get_engine", lambda: RaisingEngine(exc))
    client = APIClient()

    resp = client.post(
        "/api/sentinelhub-01",
        {"polygon": RING, "date": "2023-06-01"},
        format="json",
    )

    assert resp.status_code == status_code
    body = resp.json()
    assert body["status"] == 1
    assert body["data"] is None
    assert body["errors"]["type"] == exc.__class__.__name__


def test_missing_credentials_message_is_explicit(monkeypatch) -> None:
    exc = CredentialsMissingError("Sentinel Hub credentials not configured.")
    monkeypatch.setattr(services, "get_engine", lambda: RaisingEngine(exc))

    resp = APIClient().post(
        "/api/sentinelhub-01",
        {"polygon": RING, "date": "2023-06-01"},
        format="json",
    )

    assert resp.json()["message"] == "Sentinel Hub credentials not configured."


def test_upstream_error_details_are_exposed(monkeypatch) -> None:
    exc = UpstreamRequestError("bad", status_code=400, snippet="bad geometry")
    monkeypatch.setattr(services, "get_engine", lambda: RaisingEngine(exc))

    resp = APIClient().post(
        "/api/sentinelhub-01",
        {"polygon": RING, "date": "2023-06-01"},
        format="json",
    )

    body = resp.json()
    assert body["message"] == "Failed to fetch NDVI image"
    assert body["errors"]["upstream_status"] == 400
    assert body["errors"]["details"] == "bad geometry"


def test_stats_endpoint_returns_intervals(
    stats_engine: FakeStatsEngine,
) -> None:
    resp = APIClient().post(
        "/api/ndvi/stats",
        {"polygon": RING, "start": "2022-04-01", "end": "2022-06-30"},
        format="json",
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["start"] == "2022-04-01"
    assert data["end"] == "2022-06-30"
    assert [item["interval"] for item in data["intervals"]] == [
        "2022-04-01 - 2022-04-15",
        "2022-04-16 - 2022-04-30",
        "2022-05-01 - 2022-05-15",
        "2022-05-16 - 2022-05-31",
        "2022-06-01 - 2022-06-15",
        "2022-06-16 - 2022-06-30",
    ]
    assert {item["mean_value"] for item in data["intervals"]} == {0.5}


def test_stats_endpoint_rejects_reversed_range(
    stats_engine: FakeStatsEngine,
) -> None:
    resp = APIClient().post(
        "/api/ndvi/stats",
        {"polygon": RING, "start": "2022-06-30", "end": "2022-04-01"},
        format="json",
    )

    assert resp.status_code == 400
    assert stats_engine.calls == 0


def test_stats_endpoint_reports_upstream_failure(monkeypatch) -> None:
    exc = UpstreamServerError("down", status_code=500)
    monkeypatch.setattr(
        services, "get_stats_engine", lambda: RaisingEngine(exc)
    )

    resp = APIClient().post(
        "/api/ndvi/stats",
        {"polygon": RING, "start": "2022-04-01", "end": "2022-04-15"},
        format="json",
    )

    assert resp.status_code == 502
    assert resp.json()["message"] == "Failed to fetch NDVI statistics"


def test_map_config_requires_token(settings) -> None:
    settings.MAPBOX_ACCESS_TOKEN = ""

    resp = APIClient().get("/api/map/config")

    assert resp.status_code == 500
    assert resp.json()["message"] == "Map access token not configured."


def test_map_config_returns_styles(settings) -> None:
    settings.MAPBOX_ACCESS_TOKEN = "pk.test"
    settings.MAP_STYLE_DARK = "mapbox://styles/mapbox/dark-v11"
    settings.MAP_STYLE_SATELLITE = "mapbox://styles/mapbox/satellite-v9"

    resp = APIClient().get("/api/map/config")

    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "access_token": "pk.test",
        "default_style": "satellite",
        "styles": {
            "satellite": "mapbox://styles/mapbox/satellite-v9",
            "dark": "mapbox://styles/mapbox/dark-v11",
        },
        "overlay_opacity": 0.8,
    }


def test_polygon_stats_requires_auth_and_ownership(
    stats_engine: FakeStatsEngine,
) -> None:
    owner = _user()
    intruder = _user("intruder")
    polygon = FarmPolygon.objects.create(owner=owner, name="North", ring=RING)
    url = f"/api/v1/polygons/{polygon.id}/ndvi/stats"
    query = {"start": "2022-04-01", "end": "2022-04-30"}

    client = APIClient()
    assert client.get(url, query).status_code in (401, 403)

    client.force_authenticate(user=intruder)
    assert client.get(url, query).status_code == 404

    client.force_authenticate(user=owner)
    resp = client.get(url, query)
    assert resp.status_code == 200
    assert len(resp.json()["data"]["intervals"]) == 2


def test_legacy_polygons_are_hidden_until_migrated(
    stats_engine: FakeStatsEngine,
) -> None:
    owner = _user()
    polygon = FarmPolygon.objects.create(
        owner=owner,
        name="Legacy",
        schema_version=LEGACY_SCHEMA_VERSION,
        legacy_bbox="[[0,0],[0,1],[1,1],[1,0],[0,0]]",
    )
    client = APIClient()
    client.force_authenticate(user=owner)

    resp = client.get(
        f"/api/v1/polygons/{polygon.id}/ndvi/stats",
        {"start": "2022-04-01", "end": "2022-04-30"},
    )

    assert resp.status_code == 404


def test_polygon_overlay_returns_style_document(
    raster_engine: FakeRasterEngine,
) -> None:
    owner = _user()
    polygon = FarmPolygon.objects.create(owner=owner, name="North", ring=RING)
    SiteMarker.objects.create(
        owner=owner,
        kind=SiteMarker.TREE,
        external_id="t-1",
        lat=0.5,
        long=0.5,
        score=2,
    )
    client = APIClient()
    client.force_authenticate(user=owner)

    resp = client.get(
        f"/api/v1/polygons/{polygon.id}/ndvi/overlay", {"date": "2023-06-01"}
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    style = data["style"]
    assert style["name"] == "satellite"
    assert list(style["sources"]) == [data["layer_id"]]
    assert style["sources"][data["layer_id"]]["url"].startswith(
        "data:image/png;base64,"
    )
    assert style["markers"]["tree"][0]["warning"] is True


def test_polygon_overlay_dark_style_has_no_markers(
    raster_engine: FakeRasterEngine,
) -> None:
    owner = _user()
    polygon = FarmPolygon.objects.create(owner=owner, name="North", ring=RING)
    SiteMarker.objects.create(
        owner=owner,
        kind=SiteMarker.TREE,
        external_id="t-1",
        lat=0.5,
        long=0.5,
    )
    client = APIClient()
    client.force_authenticate(user=owner)

    resp = client.get(
        f"/api/v1/polygons/{polygon.id}/ndvi/overlay",
        {"date": "2023-06-01", "style": "dark"},
    )

    assert resp.status_code == 200
    style = resp.json()["data"]["style"]
    assert style["name"] == "dark"
    assert style["markers"] == {}
    assert len(style["layers"]) == 1
