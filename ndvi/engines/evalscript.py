"""NDVI colour ramp, cloud classifier and the evalscripts built from them.

The JavaScript sent to Sentinel Hub is rendered from the same tables the
Python helpers use, so server-side classification and local checks agree.
"""

from __future__ import annotations

import bisect
import math
from typing import Final

RGB = tuple[float, float, float]

# (exclusive upper bound, colour); the final bucket is open-ended.
NDVI_COLOR_RAMP: Final[tuple[tuple[float, RGB], ...]] = (
    (-0.5, (0.05, 0.05, 0.05)),
    (-0.2, (0.75, 0.75, 0.75)),
    (-0.1, (0.86, 0.86, 0.86)),
    (0.0, (0.92, 0.92, 0.92)),
    (0.025, (1.0, 0.98, 0.8)),
    (0.05, (0.93, 0.91, 0.71)),
    (0.075, (0.87, 0.85, 0.61)),
    (0.1, (0.8, 0.78, 0.51)),
    (0.125, (0.74, 0.72, 0.42)),
    (0.15, (0.69, 0.76, 0.38)),
    (0.175, (0.64, 0.8, 0.35)),
    (0.2, (0.57, 0.75, 0.32)),
    (0.25, (0.5, 0.7, 0.28)),
    (0.3, (0.44, 0.64, 0.25)),
    (0.35, (0.38, 0.59, 0.21)),
    (0.4, (0.31, 0.54, 0.18)),
    (0.45, (0.25, 0.49, 0.14)),
    (0.5, (0.19, 0.43, 0.11)),
    (0.55, (0.13, 0.38, 0.07)),
    (0.6, (0.06, 0.33, 0.04)),
    (math.inf, (0.0, 0.27, 0.0)),
)

_UPPER_BOUNDS: Final[tuple[float, ...]] = tuple(
    bound for bound, _ in NDVI_COLOR_RAMP
)

# Scene classification (SCL) codes treated as cloud: medium probability,
# high probability, thin cirrus.
CLOUD_SCL_CODES: Final[frozenset[int]] = frozenset({8, 9, 10})

SCL_LABELS: Final[dict[int, str]] = {
    0: "no_data",
    1: "saturated_defective",
    2: "dark_feature_shadow",
    3: "cloud_shadow",
    4: "vegetation",
    5: "not_vegetated",
    6: "water",
    7: "cloud_low_probability",
    8: "cloud_medium_probability",
    9: "cloud_high_probability",
    10: "thin_cirrus",
    11: "snow_ice",
}


def ndvi_index(nir: float, red: float) -> float:
    """Normalized difference of the NIR and red bands (NaN when undefined)."""

    total = nir + red
    if total == 0:
        return math.nan
    return (nir - red) / total


def ndvi_bucket(value: float) -> int:
    """Index into NDVI_COLOR_RAMP for a value.

    NaN lands in the final bucket, as in the evalscript where every
    `val < bound` comparison is false and the chain falls through.
    """

    last = len(NDVI_COLOR_RAMP) - 1
    if math.isnan(value):
        return last
    return min(bisect.bisect_right(_UPPER_BOUNDS, value), last)


def ndvi_color(value: float) -> RGB:
    return NDVI_COLOR_RAMP[ndvi_bucket(value)][1]


def is_cloud(scl: int) -> bool:
    return scl in CLOUD_SCL_CODES


def _js_number(value: float) -> str:
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def _ramp_js() -> str:
    lines: list[str] = []
    for idx, (bound, rgb) in enumerate(NDVI_COLOR_RAMP):
        colour = ",".join(_js_number(channel) for channel in rgb)
        body = f"imgVals = [{colour},samples.dataMask];"
        if math.isinf(bound):
            lines.append(f"  else {body}")
        elif idx == 0:
            lines.append(f"  if (val<{_js_number(bound)}) {body}")
        else:
            lines.append(f"  else if (val<{_js_number(bound)}) {body}")
    return "\n".join(lines)


def _is_cloud_js() -> str:
    codes = sorted(CLOUD_SCL_CODES)
    labels = ", ".join(f"{code} {SCL_LABELS[code]}" for code in codes)
    listed = ", ".join(str(code) for code in codes)
    return (
        f"// SCL cloud classes: {labels}\n"
        f"const CLOUD_SCL = [{listed}];\n"
        "function isCloud(scl) {\n"
        "  return CLOUD_SCL.indexOf(scl) !== -1;\n"
        "}"
    )


def build_image_evalscript() -> str:
    """Evalscript for the rendered overlay (default RGBA + index + stats)."""

    return f"""//VERSION=3
function setup() {{
  return {{
    input: ["B04", "B08", "SCL", "dataMask"],
    output: [
      {{ id: "default", bands: 4 }},
      {{ id: "index", bands: 1, sampleType: "FLOAT32" }},
      {{ id: "eobrowserStats", bands: 2, sampleType: "FLOAT32" }},
      {{ id: "dataMask", bands: 1 }}
    ]
  }};
}}

{_is_cloud_js()}

function evaluatePixel(samples) {{
  let val = index(samples.B08, samples.B04);
  let imgVals = null;
  // NaN marks no-data in the single-band scientific output.
  const indexVal = samples.dataMask === 1 ? val : NaN;
{_ramp_js()}
  return {{
    default: imgVals,
    index: [indexVal],
    eobrowserStats: [val, isCloud(samples.SCL) ? 1 : 0],
    dataMask: [samples.dataMask]
  }};
}}
"""


def build_statistics_evalscript() -> str:
    """Evalscript for masked mean statistics (cloud and no-data removed)."""

    return f"""//VERSION=3
function setup() {{
  return {{
    input: [{{bands: ["B04", "B08", "SCL", "dataMask"]}}],
    output: [
      {{ id: "ndvi", bands: 1, sampleType: "FLOAT32" }},
      {{ id: "dataMask", bands: 1 }}
    ]
  }};
}}

{_is_cloud_js()}

function evaluatePixel(samples) {{
  const ndvi = index(samples.B08, samples.B04);
  const clear = samples.dataMask === 1 && !isCloud(samples.SCL);
  const mask = clear && isFinite(ndvi) ? 1 : 0;
  return {{ ndvi: [ndvi], dataMask: [mask] }};
}}
"""


NDVI_IMAGE_EVALSCRIPT: Final[str] = build_image_evalscript()
NDVI_STATS_EVALSCRIPT: Final[str] = build_statistics_evalscript()
