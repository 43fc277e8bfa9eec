# ruff: noqa: S101
from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from datetime import date

import httpx
import pytest

from ndvi.engines.auth import SentinelHubTokenProvider
from ndvi.engines.evalscript import NDVI_IMAGE_EVALSCRIPT
from ndvi.exceptions import (
    UpstreamAuthError,
    UpstreamRequestError,
    UpstreamServerError,
    UpstreamTimeoutError,
)
from ndvi.geometry import AreaOfInterest
from ndvi.raster.sentinelhub_engine import SentinelHubRasterEngine
from ndvi.tests.fakes import PNG_BYTES

AREA = AreaOfInterest.from_coordinates(
    [[0, 0], [0, 1], [1, 1], [1, 0], [0, 0]]
)
DAY = date(2023, 6, 1)

Handler = Callable[[httpx.Request], httpx.Response]


def _engine(process: Handler, token_status: int = 200) -> tuple[
    SentinelHubRasterEngine, list[httpx.Request]
]:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/oauth/token":
            if token_status != 200:
                return httpx.Response(token_status, text="denied")
            return httpx.Response(200, json={"access_token": "tok"})
        return process(request)

    transport = httpx.MockTransport(handler)
    provider = SentinelHubTokenProvider(
        client_id="id",
        client_secret="secret",
        base_url="https://sh.test",
        transport=transport,
    )
    engine = SentinelHubRasterEngine(
        token_provider=provider,
        base_url="https://sh.test",
        size=256,
        transport=transport,
    )
    return engine, seen


def _png(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200, content=PNG_BYTES, headers={"content-type": "image/png"}
    )


def test_fetch_posts_process_request_after_token() -> None:
    engine, seen = _engine(_png)

    image = asyncio.run(engine.fetch_ndvi_image(AREA, DAY))

    assert image.content == PNG_BYTES
    assert image.content_type == "image/png"
    assert [request.url.path for request in seen] == [
        "/oauth/token",
        "/api/v1/process",
    ]
    process = seen[1]
    assert process.headers["authorization"] == "Bearer tok"
    assert process.headers["accept"] == "image/png"
    assert process.headers["content-type"] == "application/json"

    payload = json.loads(process.content)
    bounds = payload["input"]["bounds"]
    assert bounds["geometry"] == {
        "type": "Polygon",
        "coordinates": [AREA.as_lists()],
    }
    assert bounds["properties"]["crs"].endswith("EPSG/0/4326")
    data = payload["input"]["data"][0]
    assert data["type"] == "sentinel-2-l2a"
    assert data["dataFilter"]["timeRange"] == {
        "from": "2023-06-01T00:00:00Z",
        "to": "2023-06-01T23:59:59Z",
    }
    assert payload["output"]["width"] == 256
    assert payload["output"]["height"] == 256
    assert payload["output"]["responses"] == [
        {"identifier": "default", "format": {"type": "image/png"}}
    ]
    assert payload["evalscript"] == NDVI_IMAGE_EVALSCRIPT


def test_token_failure_skips_image_request() -> None:
    engine, seen = _engine(_png, token_status=401)

    with pytest.raises(UpstreamAuthError) as excinfo:
        asyncio.run(engine.fetch_ndvi_image(AREA, DAY))

    assert excinfo.value.status_code == 401
    assert [request.url.path for request in seen] == ["/oauth/token"]


@pytest.mark.parametrize(
    ("status_code", "error_cls"),
    [
        (400, UpstreamRequestError),
        (401, UpstreamAuthError),
        (403, UpstreamAuthError),
        (422, UpstreamRequestError),
        (500, UpstreamServerError),
        (503, UpstreamServerError),
    ],
)
def test_process_status_is_classified(
    status_code: int, error_cls: type[Exception]
) -> None:
    engine, _ = _engine(
        lambda request: httpx.Response(
            status_code, json={"error": {"message": "nope"}}
        )
    )

    with pytest.raises(error_cls) as excinfo:
        asyncio.run(engine.fetch_ndvi_image(AREA, DAY))

    assert excinfo.value.status_code == status_code
    assert "nope" in (excinfo.value.snippet or "")


def test_empty_body_is_server_error() -> None:
    engine, _ = _engine(
        lambda request: httpx.Response(
            200, content=b"", headers={"content-type": "image/png"}
        )
    )

    with pytest.raises(UpstreamServerError, match="no image data"):
        asyncio.run(engine.fetch_ndvi_image(AREA, DAY))


def test_non_image_body_is_server_error() -> None:
    engine, _ = _engine(
        lambda request: httpx.Response(200, json={"unexpected": True})
    )

    with pytest.raises(UpstreamServerError) as excinfo:
        asyncio.run(engine.fetch_ndvi_image(AREA, DAY))

    assert "unexpected" in (excinfo.value.snippet or "")


def test_process_timeout_is_reported() -> None:
    def slow(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    engine, _ = _engine(slow)

    with pytest.raises(UpstreamTimeoutError):
        asyncio.run(engine.fetch_ndvi_image(AREA, DAY))


def test_transport_failure_is_server_error() -> None:
    def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    engine, _ = _engine(broken)

    with pytest.raises(UpstreamServerError, match="ConnectError"):
        asyncio.run(engine.fetch_ndvi_image(AREA, DAY))
