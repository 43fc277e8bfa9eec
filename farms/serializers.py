from __future__ import annotations

from typing import Any

from django.db import transaction
from django.utils.text import slugify
from rest_framework import serializers

from ndvi.exceptions import BoundsError
from ndvi.geometry import AreaOfInterest

from .models import Alert, FarmPolygon, PolygonDate, SensorReading
from .readings import READING_ALIASES, normalize_reading


class FarmPolygonSerializer(serializers.ModelSerializer):
    dates = serializers.ListField(
        child=serializers.DateField(), required=False, write_only=True
    )
    available_dates = serializers.SerializerMethodField()

    class Meta:
        model = FarmPolygon
        fields = [
            "id",
            "name",
            "slug",
            "ring",
            "bbox_south",
            "bbox_west",
            "bbox_north",
            "bbox_east",
            "schema_version",
            "is_active",
            "dates",
            "available_dates",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "slug",
            "bbox_south",
            "bbox_west",
            "bbox_north",
            "bbox_east",
            "schema_version",
            "created_at",
            "updated_at",
        ]

    def get_available_dates(self, obj: FarmPolygon) -> list[str]:
        return [row.date.isoformat() for row in obj.dates.all()]

    def validate_ring(self, value: Any) -> list[list[float]]:
        try:
            area = AreaOfInterest.from_coordinates(value)
        except BoundsError as exc:
            raise serializers.ValidationError(str(exc)) from exc
        return area.as_lists()

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        request = self.context.get("request")
        owner_id = getattr(getattr(request, "user", None), "id", None)
        name = attrs.get("name") or getattr(self.instance, "name", None)
        if owner_id is not None and name:
            slug = getattr(self.instance, "slug", None) or (
                slugify(name)[:120] or "polygon"
            )
            qs = FarmPolygon.objects.filter(owner_id=owner_id, slug=slug)
            if self.instance is not None:
                qs = qs.exclude(id=self.instance.id)
            if qs.exists():
                raise serializers.ValidationError(
                    {"name": "Polygon name conflicts with an existing slug."}
                )
        return attrs

    def _replace_dates(self, polygon: FarmPolygon, dates: list[Any]) -> None:
        polygon.dates.all().delete()
        PolygonDate.objects.bulk_create(
            [
                PolygonDate(polygon=polygon, date=day)
                for day in sorted(set(dates))
            ]
        )

    @transaction.atomic
    def create(self, validated_data: dict[str, Any]) -> FarmPolygon:
        dates = validated_data.pop("dates", [])
        polygon = super().create(validated_data)
        self._replace_dates(polygon, dates)
        return polygon

    @transaction.atomic
    def update(
        self, instance: FarmPolygon, validated_data: dict[str, Any]
    ) -> FarmPolygon:
        dates = validated_data.pop("dates", None)
        polygon = super().update(instance, validated_data)
        if dates is not None:
            self._replace_dates(polygon, dates)
        return polygon


class AlertSerializer(serializers.ModelSerializer):
    class Meta:
        model = Alert
        fields = ["id", "message", "created_at"]
        read_only_fields = fields


class SensorReadingSerializer(serializers.ModelSerializer):
    class Meta:
        model = SensorReading
        fields = [
            "id",
            "recorded_at",
            "soil_temp",
            "env_temp",
            "flow_rate",
            "humidity",
            "ph",
            "pressure",
            "altitude",
        ]
        read_only_fields = ["id"]
        extra_kwargs = {"recorded_at": {"required": False}}

    def to_internal_value(self, data: Any) -> dict[str, Any]:
        if hasattr(data, "items"):
            # Accept legacy aliases (soilTemp, hum, atmosPressure, ...)
            merged = dict(data.items())
            legacy_keys = {
                key
                for field, aliases in READING_ALIASES.items()
                for key in aliases
                if key != field
            }
            if any(key in merged for key in legacy_keys):
                merged.update(normalize_reading(merged))
            data = merged
        return super().to_internal_value(data)
