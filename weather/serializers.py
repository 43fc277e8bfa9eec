from __future__ import annotations

from rest_framework import serializers

from .services import MAX_LOCATION_LENGTH

LOCATION_REQUIRED = "Please provide a location."


class WeatherQuerySerializer(serializers.Serializer):
    location = serializers.CharField(
        max_length=MAX_LOCATION_LENGTH,
        trim_whitespace=True,
        error_messages={
            "required": LOCATION_REQUIRED,
            "blank": LOCATION_REQUIRED,
            "null": LOCATION_REQUIRED,
        },
    )
