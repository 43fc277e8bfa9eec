# ruff: noqa: S101
from __future__ import annotations

import math

import pytest

from ndvi.engines.evalscript import (
    CLOUD_SCL_CODES,
    NDVI_COLOR_RAMP,
    NDVI_IMAGE_EVALSCRIPT,
    NDVI_STATS_EVALSCRIPT,
    SCL_LABELS,
    is_cloud,
    ndvi_bucket,
    ndvi_color,
    ndvi_index,
)


@pytest.mark.parametrize("scl", [8, 9, 10])
def test_cloud_codes_are_cloud(scl: int) -> None:
    assert is_cloud(scl) is True


@pytest.mark.parametrize("scl", [0, 1, 2, 3, 4, 5, 6, 7, 11, 42])
def test_other_codes_are_not_cloud(scl: int) -> None:
    assert is_cloud(scl) is False


def test_ndvi_index_handles_zero_sum() -> None:
    assert ndvi_index(0.6, 0.2) == pytest.approx(0.5)
    assert math.isnan(ndvi_index(0.0, 0.0))


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (-0.9, (0.05, 0.05, 0.05)),
        (-0.5, (0.75, 0.75, 0.75)),
        (0.0, (1.0, 0.98, 0.8)),
        (0.3, (0.38, 0.59, 0.21)),
        (0.59, (0.06, 0.33, 0.04)),
        (0.6, (0.0, 0.27, 0.0)),
        (0.95, (0.0, 0.27, 0.0)),
    ],
)
def test_ramp_bucket_boundaries(
    value: float, expected: tuple[float, float, float]
) -> None:
    assert ndvi_color(value) == expected


def test_nan_falls_through_to_last_bucket() -> None:
    assert ndvi_bucket(math.nan) == len(NDVI_COLOR_RAMP) - 1


def test_image_evalscript_embeds_ramp_and_cloud_codes() -> None:
    assert NDVI_IMAGE_EVALSCRIPT.startswith("//VERSION=3")
    assert "if (val<-0.5) imgVals = [0.05,0.05,0.05,samples.dataMask];" in (
        NDVI_IMAGE_EVALSCRIPT
    )
    assert "else if (val<0.6)" in NDVI_IMAGE_EVALSCRIPT
    assert "else imgVals = [0,0.27,0,samples.dataMask];" in (
        NDVI_IMAGE_EVALSCRIPT
    )
    codes = ", ".join(str(code) for code in sorted(CLOUD_SCL_CODES))
    assert f"const CLOUD_SCL = [{codes}];" in NDVI_IMAGE_EVALSCRIPT
    assert 'id: "eobrowserStats", bands: 2' in NDVI_IMAGE_EVALSCRIPT


def test_stats_evalscript_masks_clouds_and_nodata() -> None:
    assert 'id: "ndvi"' in NDVI_STATS_EVALSCRIPT
    assert "!isCloud(samples.SCL)" in NDVI_STATS_EVALSCRIPT
    assert "samples.dataMask === 1" in NDVI_STATS_EVALSCRIPT


def test_cloud_classes_are_labelled_in_both_evalscripts() -> None:
    line = (
        "// SCL cloud classes: 8 cloud_medium_probability, "
        "9 cloud_high_probability, 10 thin_cirrus"
    )
    assert line in NDVI_IMAGE_EVALSCRIPT
    assert line in NDVI_STATS_EVALSCRIPT
    assert set(CLOUD_SCL_CODES) <= set(SCL_LABELS)
