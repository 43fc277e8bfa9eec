from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import AlertListView, FarmPolygonViewSet, StationReadingsView

router = DefaultRouter()
router.register("polygons", FarmPolygonViewSet, basename="polygon")

urlpatterns = [
    path("alerts/", AlertListView.as_view(), name="alert-list"),
    path(
        "stations/<int:station_id>/readings/",
        StationReadingsView.as_view(),
        name="station-readings",
    ),
]
urlpatterns += router.urls
