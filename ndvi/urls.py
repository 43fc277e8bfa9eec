from __future__ import annotations

from django.urls import path

from .views import MapConfigView, NdviImageView, NdviStatsView

urlpatterns = [
    path("sentinelhub-01", NdviImageView.as_view(), name="ndvi-image"),
    path("ndvi/stats", NdviStatsView.as_view(), name="ndvi-stats"),
    path("map/config", MapConfigView.as_view(), name="map-config"),
]
