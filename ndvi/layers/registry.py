"""Bookkeeping for NDVI overlays currently on a map."""

from __future__ import annotations

import logging
import secrets
import string
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Final

from ndvi.geometry import AreaOfInterest, Corners
from ndvi.metrics import ndvi_overlay_layers

from .images import ImageHandle

logger = logging.getLogger(__name__)

VISIBLE_OPACITY: Final[float] = 0.8
HIDDEN_OPACITY: Final[float] = 0.0
_ID_ALPHABET: Final[str] = string.digits + string.ascii_lowercase
_ID_SUFFIX_LEN: Final[int] = 9


def new_layer_id(now_ms: int | None = None) -> str:
    """Return an id of the form ``ndvi-<epoch ms>-<9 base36 chars>``."""

    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(
        secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LEN)
    )
    return f"ndvi-{stamp}-{suffix}"


@dataclass
class NdviLayer:
    image: ImageHandle
    bounds: Corners
    date: date
    area: AreaOfInterest
    id: str = ""


ReleaseHook = Callable[[NdviLayer], None]


class LayerRegistry:
    """Ordered id -> layer map with a single visibility flag.

    Release hooks run before a layer's image handle is released, so the
    overlay is always detached from the surface first.
    """

    def __init__(self) -> None:
        self._layers: dict[str, NdviLayer] = {}
        self._visible = True
        self._release_hooks: list[ReleaseHook] = []

    def add_release_hook(self, hook: ReleaseHook) -> None:
        self._release_hooks.append(hook)

    def remove_release_hook(self, hook: ReleaseHook) -> None:
        if hook in self._release_hooks:
            self._release_hooks.remove(hook)

    def add(self, layer: NdviLayer) -> str:
        """Store ``layer``, assigning an id when it has none.

        A different layer already stored under the same id is released
        first. Adding the stored layer again is a no-op.
        """

        if not layer.id:
            layer.id = new_layer_id()
        existing = self._layers.get(layer.id)
        if existing is layer:
            return layer.id
        if existing is not None:
            logger.info("ndvi.layer.replace id=%s", layer.id)
            del self._layers[layer.id]
            self._release(
                existing, release_image=existing.image is not layer.image
            )
        self._layers[layer.id] = layer
        ndvi_overlay_layers.inc()
        return layer.id

    def remove(self, layer_id: str) -> None:
        layer = self._layers.pop(layer_id, None)
        if layer is None:
            return
        self._release(layer)

    def clear(self) -> None:
        while self._layers:
            layer_id = next(iter(self._layers))
            self.remove(layer_id)

    def list(self) -> list[NdviLayer]:
        return list(self._layers.values())

    def get(self, layer_id: str) -> NdviLayer | None:
        return self._layers.get(layer_id)

    def set_visible(self, visible: bool) -> None:
        self._visible = bool(visible)

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def opacity(self) -> float:
        return VISIBLE_OPACITY if self._visible else HIDDEN_OPACITY

    def __contains__(self, layer_id: object) -> bool:
        return layer_id in self._layers

    def __len__(self) -> int:
        return len(self._layers)

    def _release(
        self, layer: NdviLayer, *, release_image: bool = True
    ) -> None:
        try:
            for hook in list(self._release_hooks):
                hook(layer)
        finally:
            if release_image:
                layer.image.release()
            ndvi_overlay_layers.dec()
