from __future__ import annotations

from django.urls import path

from .views import PolygonNdviOverlayView, PolygonNdviStatsView

urlpatterns = [
    path(
        "polygons/<int:polygon_id>/ndvi/stats",
        PolygonNdviStatsView.as_view(),
        name="polygon-ndvi-stats",
    ),
    path(
        "polygons/<int:polygon_id>/ndvi/overlay",
        PolygonNdviOverlayView.as_view(),
        name="polygon-ndvi-overlay",
    ),
]
