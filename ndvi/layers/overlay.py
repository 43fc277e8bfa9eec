"""Keep NDVI overlays and site markers in sync with a map surface."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import date
from types import TracebackType
from typing import Final

from django.conf import settings

from farms.feeds import MARKER_KINDS, Subscription, subscribe_markers
from ndvi.exceptions import ImageLoadError
from ndvi.geometry import AreaOfInterest
from ndvi.raster.base import NdviRasterEngine, RasterImage
from ndvi.raster.registry import get_engine

from .images import ImageHandle, decode_image
from .registry import LayerRegistry, NdviLayer
from .surface import MapStyle, MapSurface, Marker

logger = logging.getLogger(__name__)

FIT_BOUNDS_PADDING: Final[int] = 50


def _release_orphan(task: asyncio.Future[ImageHandle]) -> None:
    if task.cancelled() or task.exception() is not None:
        return
    task.result().release()


class OverlayRenderer:
    """Draw registry layers onto a surface and survive style swaps."""

    def __init__(
        self,
        surface: MapSurface,
        registry: LayerRegistry | None = None,
        engine: NdviRasterEngine | None = None,
        *,
        decode_timeout: float | None = None,
    ) -> None:
        self.surface = surface
        self.registry = registry if registry is not None else LayerRegistry()
        self.engine = engine if engine is not None else get_engine()
        self.decode_timeout = decode_timeout or float(
            getattr(settings, "NDVI_DECODE_TIMEOUT_SECONDS", 10)
        )
        self._style = surface.style
        self._markers: dict[str, tuple[Marker, ...]] = {}
        self._subscriptions: list[Subscription] = []
        self.registry.add_release_hook(self._detach)

    @property
    def style(self) -> MapStyle:
        return self._style

    async def add_layer(
        self,
        area: AreaOfInterest,
        day: date,
        layer_id: str | None = None,
    ) -> str:
        raster = await self.engine.fetch_ndvi_image(area, day)
        handle = await self._decode(raster)
        layer = NdviLayer(
            image=handle,
            bounds=area.overlay_corners(),
            date=day,
            area=area,
            id=layer_id or "",
        )
        self.registry.add(layer)
        self._attach(layer)
        self.surface.fit_bounds(layer.bounds, FIT_BOUNDS_PADDING)
        logger.info(
            "ndvi.layer.added id=%s day=%s layers=%s",
            layer.id,
            day.isoformat(),
            len(self.registry),
        )
        return layer.id

    async def _decode(self, raster: RasterImage) -> ImageHandle:
        task = asyncio.ensure_future(asyncio.to_thread(decode_image, raster))
        try:
            return await asyncio.wait_for(
                asyncio.shield(task), self.decode_timeout
            )
        except asyncio.TimeoutError as exc:
            task.add_done_callback(_release_orphan)
            raise ImageLoadError(
                f"NDVI image decode exceeded {self.decode_timeout}s"
            ) from exc
        except BaseException:
            task.add_done_callback(_release_orphan)
            raise

    def remove_layer(self, layer_id: str) -> None:
        self.registry.remove(layer_id)

    def clear(self) -> None:
        self.registry.clear()

    def set_visible(self, visible: bool) -> None:
        self.registry.set_visible(visible)
        for layer in self.registry.list():
            self.surface.set_layer_opacity(layer.id, self.registry.opacity)

    def toggle_visibility(self) -> bool:
        self.set_visible(not self.registry.visible)
        return self.registry.visible

    def set_style(self, style: MapStyle) -> None:
        if style == self._style:
            return
        self._style = style
        self.surface.set_style(style, self._on_style_load)

    def toggle_style(self) -> MapStyle:
        target = (
            MapStyle.DARK
            if self._style is MapStyle.SATELLITE
            else MapStyle.SATELLITE
        )
        self.set_style(target)
        return target

    def update_markers(self, kind: str, markers: Sequence[Marker]) -> None:
        self._markers[kind] = tuple(markers)
        if self._style is MapStyle.SATELLITE:
            self.surface.set_markers(kind, self._markers[kind])

    def markers(self, kind: str) -> tuple[Marker, ...]:
        return self._markers.get(kind, ())

    def watch_markers(self, owner_id: int) -> None:
        for kind in MARKER_KINDS:
            self._subscriptions.append(
                subscribe_markers(
                    owner_id,
                    kind,
                    lambda markers, kind=kind: self.update_markers(
                        kind, markers
                    ),
                )
            )

    def close(self) -> None:
        while self._subscriptions:
            self._subscriptions.pop().close()
        self.registry.clear()
        self.registry.remove_release_hook(self._detach)

    def __enter__(self) -> OverlayRenderer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _on_style_load(self) -> None:
        for layer in self.registry.list():
            self._attach(layer)
        if self._style is MapStyle.SATELLITE:
            for kind, markers in self._markers.items():
                self.surface.set_markers(kind, markers)
        logger.info(
            "map.style.loaded style=%s layers=%s",
            self._style.value,
            len(self.registry),
        )

    def _attach(self, layer: NdviLayer) -> None:
        if not self.surface.has_source(layer.id):
            self.surface.add_image_source(layer.id, layer.image, layer.bounds)
        if not self.surface.has_layer(layer.id):
            self.surface.add_raster_layer(
                layer.id, layer.id, self.registry.opacity
            )

    def _detach(self, layer: NdviLayer) -> None:
        if self.surface.has_layer(layer.id):
            self.surface.remove_raster_layer(layer.id)
        if self.surface.has_source(layer.id):
            self.surface.remove_image_source(layer.id)
