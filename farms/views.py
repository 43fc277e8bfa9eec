from __future__ import annotations

from typing import cast

from django.db.models import QuerySet
from django.shortcuts import get_object_or_404
from rest_framework.generics import ListAPIView, ListCreateAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.serializers import BaseSerializer
from rest_framework.viewsets import ModelViewSet

from .models import (
    CURRENT_SCHEMA_VERSION,
    Alert,
    FarmPolygon,
    SensorReading,
    SiteMarker,
)
from .permissions import IsOwner
from .serializers import (
    AlertSerializer,
    FarmPolygonSerializer,
    SensorReadingSerializer,
)

MAX_READINGS = 500


def _owner_id(view: ListAPIView | ModelViewSet) -> int | None:
    return cast(int | None, getattr(view.request.user, "id", None))


class FarmPolygonViewSet(ModelViewSet):
    serializer_class = FarmPolygonSerializer
    permission_classes = [IsAuthenticated, IsOwner]

    def get_queryset(self) -> QuerySet[FarmPolygon]:
        # Owner-only visibility; legacy rows stay hidden until migrated
        user_id = _owner_id(self)
        if user_id is None:
            return FarmPolygon.objects.none()
        return (
            FarmPolygon.objects.filter(
                owner_id=user_id, schema_version__gte=CURRENT_SCHEMA_VERSION
            )
            .prefetch_related("dates")
            .order_by("-created_at")
        )

    def perform_create(self, serializer: BaseSerializer[FarmPolygon]) -> None:
        # Prevents clients from spoofing owner
        serializer.save(owner=self.request.user)


class AlertListView(ListAPIView):
    serializer_class = AlertSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self) -> QuerySet[Alert]:
        user_id = _owner_id(self)
        if user_id is None:
            return Alert.objects.none()
        return Alert.objects.filter(owner_id=user_id)


class StationReadingsView(ListCreateAPIView):
    serializer_class = SensorReadingSerializer
    permission_classes = [IsAuthenticated]

    def get_station(self) -> SiteMarker:
        return get_object_or_404(
            SiteMarker,
            pk=self.kwargs["station_id"],
            owner_id=_owner_id(self),
            kind=SiteMarker.GROUND_STATION,
        )

    def get_queryset(self) -> QuerySet[SensorReading]:
        station = self.get_station()
        return SensorReading.objects.filter(station=station)[:MAX_READINGS]

    def perform_create(
        self, serializer: BaseSerializer[SensorReading]
    ) -> None:
        serializer.save(station=self.get_station())
