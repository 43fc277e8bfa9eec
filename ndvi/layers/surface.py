"""Map surfaces that NDVI overlays and site markers are drawn onto."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from django.conf import settings

from ndvi.geometry import Corners

from .images import ImageHandle

logger = logging.getLogger(__name__)

LOW_SCORE_THRESHOLD = 5


class MapStyle(str, Enum):
    SATELLITE = "satellite"
    DARK = "dark"

    def url(self) -> str:
        if self is MapStyle.DARK:
            return getattr(
                settings, "MAP_STYLE_DARK", "mapbox://styles/mapbox/dark-v11"
            )
        return getattr(
            settings,
            "MAP_STYLE_SATELLITE",
            "mapbox://styles/mapbox/satellite-v9",
        )


@dataclass(frozen=True)
class Marker:
    """A ground station or tree pinned on the map."""

    id: str
    kind: str
    lat: float
    long: float
    score: float | None = None

    @property
    def warning(self) -> bool:
        return self.score is not None and self.score < LOW_SCORE_THRESHOLD

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "coordinates": [self.long, self.lat],
            "score": self.score,
            "warning": self.warning,
        }


StyleLoadListener = Callable[[], None]


class MapSurface(Protocol):
    """Operations the overlay renderer needs from a map."""

    @property
    def style(self) -> MapStyle: ...

    def has_source(self, source_id: str) -> bool: ...

    def has_layer(self, layer_id: str) -> bool: ...

    def add_image_source(
        self, source_id: str, image: ImageHandle, corners: Corners
    ) -> None: ...

    def remove_image_source(self, source_id: str) -> None: ...

    def add_raster_layer(
        self, layer_id: str, source_id: str, opacity: float
    ) -> None: ...

    def remove_raster_layer(self, layer_id: str) -> None: ...

    def set_layer_opacity(self, layer_id: str, opacity: float) -> None: ...

    def fit_bounds(self, corners: Corners, padding: int) -> None: ...

    def set_style(
        self, style: MapStyle, on_load: StyleLoadListener
    ) -> None: ...

    def set_markers(self, kind: str, markers: Sequence[Marker]) -> None: ...


class StyleDocumentSurface:
    """In-memory Mapbox GL style document.

    Swapping the style discards every source, layer and marker, as a real
    map does. With ``auto_load`` the load listener fires immediately;
    otherwise it fires on ``finish_style_load()``.
    """

    def __init__(
        self,
        style: MapStyle = MapStyle.SATELLITE,
        *,
        auto_load: bool = True,
    ) -> None:
        self._style = style
        self.auto_load = auto_load
        self._sources: dict[str, dict[str, Any]] = {}
        self._layers: dict[str, dict[str, Any]] = {}
        self._markers: dict[str, tuple[Marker, ...]] = {}
        self._pending_load: StyleLoadListener | None = None
        self.camera: dict[str, Any] | None = None

    @property
    def style(self) -> MapStyle:
        return self._style

    @property
    def loading(self) -> bool:
        return self._pending_load is not None

    def has_source(self, source_id: str) -> bool:
        return source_id in self._sources

    def has_layer(self, layer_id: str) -> bool:
        return layer_id in self._layers

    def add_image_source(
        self, source_id: str, image: ImageHandle, corners: Corners
    ) -> None:
        if source_id in self._sources:
            raise ValueError(f"Source {source_id!r} already exists.")
        self._sources[source_id] = {
            "type": "image",
            "image": image,
            "coordinates": [list(point) for point in corners],
        }

    def remove_image_source(self, source_id: str) -> None:
        if any(
            layer["source"] == source_id for layer in self._layers.values()
        ):
            raise ValueError(f"Source {source_id!r} is still in use.")
        self._sources.pop(source_id, None)

    def add_raster_layer(
        self, layer_id: str, source_id: str, opacity: float
    ) -> None:
        if layer_id in self._layers:
            raise ValueError(f"Layer {layer_id!r} already exists.")
        if source_id not in self._sources:
            raise ValueError(f"Source {source_id!r} does not exist.")
        self._layers[layer_id] = {
            "id": layer_id,
            "type": "raster",
            "source": source_id,
            "paint": {"raster-opacity": opacity},
        }

    def remove_raster_layer(self, layer_id: str) -> None:
        self._layers.pop(layer_id, None)

    def set_layer_opacity(self, layer_id: str, opacity: float) -> None:
        layer = self._layers.get(layer_id)
        if layer is not None:
            layer["paint"]["raster-opacity"] = opacity

    def layer_opacity(self, layer_id: str) -> float | None:
        layer = self._layers.get(layer_id)
        return None if layer is None else layer["paint"]["raster-opacity"]

    def fit_bounds(self, corners: Corners, padding: int) -> None:
        lons = [point[0] for point in corners]
        lats = [point[1] for point in corners]
        self.camera = {
            "bounds": [[min(lons), min(lats)], [max(lons), max(lats)]],
            "padding": padding,
        }

    def set_style(self, style: MapStyle, on_load: StyleLoadListener) -> None:
        logger.info(
            "map.style.swap from=%s to=%s", self._style.value, style.value
        )
        self._style = style
        self._sources.clear()
        self._layers.clear()
        self._markers.clear()
        self._pending_load = on_load
        if self.auto_load:
            self.finish_style_load()

    def finish_style_load(self) -> None:
        listener, self._pending_load = self._pending_load, None
        if listener is not None:
            listener()

    def set_markers(self, kind: str, markers: Sequence[Marker]) -> None:
        if markers:
            self._markers[kind] = tuple(markers)
        else:
            self._markers.pop(kind, None)

    def markers(self, kind: str) -> tuple[Marker, ...]:
        return self._markers.get(kind, ())

    def layer_ids(self) -> list[str]:
        return list(self._layers)

    def to_style(self) -> dict[str, Any]:
        """Serialize as a style document with inline ``data:`` images."""

        sources: dict[str, Any] = {}
        for source_id, source in self._sources.items():
            image: ImageHandle = source["image"]
            sources[source_id] = {
                "type": "image",
                "url": image.data_uri(),
                "coordinates": source["coordinates"],
            }
        return {
            "version": 8,
            "name": self._style.value,
            "metadata": {"style_url": self._style.url()},
            "sources": sources,
            "layers": [dict(layer) for layer in self._layers.values()],
            "markers": {
                kind: [marker.as_dict() for marker in markers]
                for kind, markers in self._markers.items()
            },
        }
