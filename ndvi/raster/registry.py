"""Engine lookup by dotted path, so tests and deployments can swap them."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from django.conf import settings
from django.utils.module_loading import import_string

from .base import NdviRasterEngine

DEFAULT_RASTER_ENGINE_PATH = (
    "ndvi.raster.sentinelhub_engine.SentinelHubRasterEngine"
)


def load_engine(setting_name: str, default_path: str) -> Any:
    """Instantiate the class named by ``setting_name`` with no arguments."""

    engine_path = getattr(settings, setting_name, None) or default_path
    return import_string(engine_path)()


@lru_cache(maxsize=1)
def get_engine() -> NdviRasterEngine:
    """Return the configured raster engine instance."""

    return load_engine("NDVI_RASTER_ENGINE_PATH", DEFAULT_RASTER_ENGINE_PATH)
