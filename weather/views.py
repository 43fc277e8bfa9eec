"""Weather API endpoint.

Authentication: public.
Success: the upstream provider's JSON, unchanged (units metric).
Failure: the standard error envelope, whose top-level `error` carries the
message, with the upstream status code when there was one.
"""

from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiTypes,
    extend_schema,
)
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from config.api.openapi import error_envelope_serializer
from config.api.responses import error_response

from .engines.base import WeatherError
from .serializers import WeatherQuerySerializer
from .services import get_current_weather

logger = logging.getLogger(__name__)

weather_error_schema = error_envelope_serializer("WeatherErrorResponse")


class WeatherView(APIView):
    """Current weather for a free-text location (city name)."""

    permission_classes = [AllowAny]
    authentication_classes: list[type] = []

    @extend_schema(
        parameters=[
            OpenApiParameter(
                name="location",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=True,
                description="City name, optionally with country code",
            ),
        ],
        responses={
            200: OpenApiTypes.OBJECT,
            400: weather_error_schema,
            500: weather_error_schema,
            502: weather_error_schema,
            504: weather_error_schema,
        },
    )
    def get(self, request: Request) -> Response:
        serializer = WeatherQuerySerializer(data=request.query_params)
        if not serializer.is_valid():
            return error_response(
                str(serializer.errors["location"][0]),
                errors=serializer.errors,
                status_code=status.HTTP_400_BAD_REQUEST,
            )
        params = serializer.validated_data

        try:
            payload = async_to_sync(get_current_weather)(params["location"])
        except WeatherError as exc:
            logger.warning(
                "weather.request.failed type=%s status=%s",
                exc.__class__.__name__,
                exc.status_code,
            )
            return error_response(str(exc), status_code=exc.status_code)
        return Response(payload, status=status.HTTP_200_OK)
