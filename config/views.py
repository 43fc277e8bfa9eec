"""Project landing endpoint used for quick service checks."""

from __future__ import annotations

from django.http import HttpRequest, JsonResponse
from django.urls import reverse


def home(request: HttpRequest) -> JsonResponse:
    """Return service metadata and the public entry points."""
    return JsonResponse(
        {
            "ok": True,
            "service": "farm-monitor",
            "docs": "/api/docs/",
            "redoc": "/api/redoc/",
            "endpoints": {
                "ndvi_image": reverse("ndvi-image"),
                "ndvi_stats": reverse("ndvi-stats"),
                "map_config": reverse("map-config"),
                "weather": reverse("weather"),
                "polygons": reverse("polygon-list"),
            },
        }
    )
