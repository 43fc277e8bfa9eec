from __future__ import annotations

from typing import Any

from rest_framework import serializers

from .exceptions import BoundsError
from .geometry import AreaOfInterest
from .layers.surface import MapStyle
from .services import validate_stats_range


class PolygonField(serializers.Field):
    """A closed [lon, lat] ring, validated into an AreaOfInterest."""

    def to_internal_value(self, data: Any) -> AreaOfInterest:
        try:
            return AreaOfInterest.from_coordinates(data)
        except BoundsError as exc:
            raise serializers.ValidationError(str(exc)) from exc

    def to_representation(self, value: AreaOfInterest) -> list[list[float]]:
        return value.as_lists()


class NdviImageRequestSerializer(serializers.Serializer):
    polygon = PolygonField()
    date = serializers.DateField()


class StatsRangeSerializer(serializers.Serializer):
    start = serializers.DateField()
    end = serializers.DateField()

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        validate_stats_range(attrs["start"], attrs["end"])
        return attrs


class NdviStatsRequestSerializer(StatsRangeSerializer):
    polygon = PolygonField()


class OverlayQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    style = serializers.ChoiceField(
        choices=[style.value for style in MapStyle],
        required=False,
        default=MapStyle.SATELLITE.value,
    )


class StatIntervalSerializer(serializers.Serializer):
    interval = serializers.CharField()
    mean_value = serializers.FloatField(allow_null=True)


class NdviStatsDataSerializer(serializers.Serializer):
    start = serializers.DateField()
    end = serializers.DateField()
    intervals = StatIntervalSerializer(many=True)


class MapConfigSerializer(serializers.Serializer):
    access_token = serializers.CharField()
    default_style = serializers.CharField()
    styles = serializers.DictField(child=serializers.CharField())
    overlay_opacity = serializers.FloatField()
