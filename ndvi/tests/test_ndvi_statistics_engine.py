# ruff: noqa: S101
from __future__ import annotations

import asyncio
import json
from datetime import date
from typing import Any

import httpx
import pytest

from ndvi.engines.auth import SentinelHubTokenProvider
from ndvi.engines.base import StatInterval
from ndvi.engines.sentinelhub import (
    SentinelHubStatisticsEngine,
    interval_label,
    semi_monthly_buckets,
)
from ndvi.exceptions import UpstreamRequestError, UpstreamServerError
from ndvi.geometry import AreaOfInterest

AREA = AreaOfInterest.from_coordinates(
    [[0, 0], [0, 1], [1, 1], [1, 0], [0, 0]]
)


def _stats_body(mean: Any, sample: int = 100, no_data: int = 0) -> dict:
    return {
        "data": [
            {
                "interval": {"from": "x", "to": "y"},
                "outputs": {
                    "ndvi": {
                        "bands": {
                            "B0": {
                                "stats": {
                                    "mean": mean,
                                    "sampleCount": sample,
                                    "noDataCount": no_data,
                                }
                            }
                        }
                    }
                },
            }
        ]
    }


def _engine(
    respond: Any,
) -> tuple[SentinelHubStatisticsEngine, list[dict[str, Any]]]:
    payloads: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "tok"})
        payload = json.loads(request.content)
        payloads.append(payload)
        return respond(payload)

    transport = httpx.MockTransport(handler)
    provider = SentinelHubTokenProvider(
        client_id="id",
        client_secret="secret",
        base_url="https://sh.test",
        transport=transport,
    )
    engine = SentinelHubStatisticsEngine(
        token_provider=provider,
        base_url="https://sh.test",
        transport=transport,
    )
    return engine, payloads


def test_semi_monthly_buckets_cover_a_quarter() -> None:
    buckets = semi_monthly_buckets(date(2022, 4, 1), date(2022, 6, 30))

    assert [interval_label(*bucket) for bucket in buckets] == [
        "2022-04-01 - 2022-04-15",
        "2022-04-16 - 2022-04-30",
        "2022-05-01 - 2022-05-15",
        "2022-05-16 - 2022-05-31",
        "2022-06-01 - 2022-06-15",
        "2022-06-16 - 2022-06-30",
    ]


def test_buckets_are_clipped_to_range() -> None:
    buckets = semi_monthly_buckets(date(2024, 2, 10), date(2024, 3, 3))

    assert buckets == [
        (date(2024, 2, 10), date(2024, 2, 15)),
        (date(2024, 2, 16), date(2024, 2, 29)),
        (date(2024, 3, 1), date(2024, 3, 3)),
    ]


def test_single_day_range_is_one_bucket() -> None:
    day = date(2023, 1, 16)

    assert semi_monthly_buckets(day, day) == [(day, day)]


def test_reversed_range_is_rejected() -> None:
    with pytest.raises(ValueError):
        semi_monthly_buckets(date(2023, 2, 1), date(2023, 1, 1))


def test_fetch_stats_returns_one_interval_per_bucket_in_order() -> None:
    def respond(payload: dict[str, Any]) -> httpx.Response:
        start = payload["aggregation"]["timeRange"]["from"]
        month = int(start[5:7])
        day = int(start[8:10])
        return httpx.Response(200, json=_stats_body(month * 10.0 + day))

    engine, payloads = _engine(respond)

    intervals = asyncio.run(
        engine.fetch_stats(AREA, date(2022, 4, 1), date(2022, 6, 30))
    )

    assert intervals == [
        StatInterval("2022-04-01 - 2022-04-15", 41.0),
        StatInterval("2022-04-16 - 2022-04-30", 56.0),
        StatInterval("2022-05-01 - 2022-05-15", 51.0),
        StatInterval("2022-05-16 - 2022-05-31", 66.0),
        StatInterval("2022-06-01 - 2022-06-15", 61.0),
        StatInterval("2022-06-16 - 2022-06-30", 76.0),
    ]
    assert len(payloads) == 6
    first = next(
        p
        for p in payloads
        if p["aggregation"]["timeRange"]["from"] == "2022-04-01T00:00:00Z"
    )
    assert first["aggregation"]["timeRange"]["to"] == "2022-04-16T00:00:00Z"
    assert first["aggregation"]["aggregationInterval"] == {"of": "P15D"}
    assert first["input"]["bounds"]["geometry"]["coordinates"] == [
        AREA.as_lists()
    ]
    assert first["input"]["data"] == [{"type": "sentinel-2-l2a"}]


@pytest.mark.parametrize(
    "body",
    [
        _stats_body("NaN"),
        _stats_body(None),
        _stats_body(0.4, sample=50, no_data=50),
        {"data": []},
        {"data": [{"error": {"type": "EXECUTION_ERROR"}}]},
    ],
)
def test_buckets_without_valid_pixels_have_no_mean(body: dict) -> None:
    engine, _ = _engine(lambda payload: httpx.Response(200, json=body))

    intervals = asyncio.run(
        engine.fetch_stats(AREA, date(2022, 4, 1), date(2022, 4, 15))
    )

    assert intervals == [StatInterval("2022-04-01 - 2022-04-15", None)]


def test_bucket_failure_fails_the_whole_request() -> None:
    def respond(payload: dict[str, Any]) -> httpx.Response:
        if payload["aggregation"]["timeRange"]["from"].startswith(
            "2022-04-16"
        ):
            return httpx.Response(400, json={"error": "bad geometry"})
        return httpx.Response(200, json=_stats_body(0.5))

    engine, _ = _engine(respond)

    with pytest.raises(UpstreamRequestError) as excinfo:
        asyncio.run(
            engine.fetch_stats(AREA, date(2022, 4, 1), date(2022, 4, 30))
        )

    assert excinfo.value.status_code == 400


def test_non_json_success_is_server_error() -> None:
    engine, _ = _engine(
        lambda payload: httpx.Response(200, content=b"<html>")
    )

    with pytest.raises(UpstreamServerError, match="not JSON"):
        asyncio.run(
            engine.fetch_stats(AREA, date(2022, 4, 1), date(2022, 4, 2))
        )


def test_bucket_failure_cancels_pending_buckets() -> None:
    completed: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "tok"})
        start = json.loads(request.content)["aggregation"]["timeRange"][
            "from"
        ]
        if start.startswith("2022-04-01"):
            return httpx.Response(500, text="boom")
        await asyncio.sleep(0.2)
        completed.append(start)
        return httpx.Response(200, json=_stats_body(0.5))

    transport = httpx.MockTransport(handler)
    engine = SentinelHubStatisticsEngine(
        token_provider=SentinelHubTokenProvider(
            client_id="id",
            client_secret="secret",
            base_url="https://sh.test",
            transport=transport,
        ),
        base_url="https://sh.test",
        transport=transport,
    )

    async def run() -> int:
        with pytest.raises(UpstreamServerError):
            await engine.fetch_stats(
                AREA, date(2022, 4, 1), date(2022, 6, 30)
            )
        pending = [
            task
            for task in asyncio.all_tasks()
            if task is not asyncio.current_task()
        ]
        await asyncio.sleep(0.4)
        return len(pending)

    assert asyncio.run(run()) == 0
    assert completed == []
