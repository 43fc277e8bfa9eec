"""NDVI API endpoints.

Public endpoints (AllowAny): rendered NDVI image, ad-hoc polygon statistics
and map configuration. Owner-scoped endpoints (JWT or session) serve
statistics and overlay style documents for stored polygons.

JSON responses use the standard envelope from `config.api.responses`:

    {"status": 0, "message": "<str>", "data": <object|null>, "errors": null}

Failures add a top-level `error` string alongside `message`.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, cast

from asgiref.sync import async_to_sync
from django.conf import settings
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiTypes,
    extend_schema,
    inline_serializer,
)
from rest_framework import serializers, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from config.api.openapi import (
    error_envelope_serializer,
    success_envelope_serializer,
)
from config.api.responses import error_response, success_response
from farms.feeds import MARKER_KINDS, marker_snapshot
from farms.models import CURRENT_SCHEMA_VERSION, FarmPolygon

from .exceptions import (
    BoundsError,
    ConfigurationError,
    ImageLoadError,
    NdviError,
    UpstreamAuthError,
    UpstreamError,
    UpstreamRequestError,
    UpstreamTimeoutError,
)
from .geometry import AreaOfInterest
from .layers.overlay import OverlayRenderer
from .layers.registry import VISIBLE_OPACITY
from .layers.surface import MapStyle, StyleDocumentSurface
from .serializers import (
    MapConfigSerializer,
    NdviImageRequestSerializer,
    NdviStatsDataSerializer,
    NdviStatsRequestSerializer,
    OverlayQuerySerializer,
    StatsRangeSerializer,
)
from .services import get_ndvi_stats, render_ndvi_image, serialize_intervals

logger = logging.getLogger(__name__)

ndvi_error_response = error_envelope_serializer("NdviErrorResponse")
stats_success_response = success_envelope_serializer(
    "NdviStatsSuccess", data=NdviStatsDataSerializer()
)
map_config_success_response = success_envelope_serializer(
    "MapConfigSuccess", data=MapConfigSerializer()
)
overlay_success_response = success_envelope_serializer(
    "NdviOverlaySuccess",
    data=inline_serializer(
        name="NdviOverlayStyle",
        fields={
            "layer_id": serializers.CharField(),
            "style": serializers.JSONField(),
        },
    ),
)

range_query_params = [
    OpenApiParameter(
        name="start",
        type=OpenApiTypes.DATE,
        location=OpenApiParameter.QUERY,
        required=True,
    ),
    OpenApiParameter(
        name="end",
        type=OpenApiTypes.DATE,
        location=OpenApiParameter.QUERY,
        required=True,
    ),
]

ndvi_error_statuses = {
    400: ndvi_error_response,
    401: ndvi_error_response,
    403: ndvi_error_response,
    500: ndvi_error_response,
    502: ndvi_error_response,
    504: ndvi_error_response,
}


def ndvi_error_status(exc: NdviError) -> int:
    """HTTP status a pipeline failure is reported with."""

    if isinstance(exc, ConfigurationError):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(exc, UpstreamAuthError):
        if exc.status_code in (401, 403):
            return exc.status_code
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, UpstreamRequestError | BoundsError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, UpstreamTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    if isinstance(exc, UpstreamError | ImageLoadError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def ndvi_error_response_for(exc: NdviError, message: str) -> Response:
    status_code = ndvi_error_status(exc)
    errors: dict[str, Any] = {"type": exc.__class__.__name__}
    if isinstance(exc, ConfigurationError):
        message = str(exc)
    elif isinstance(exc, UpstreamError):
        errors["upstream_status"] = exc.status_code
        errors["details"] = exc.snippet
    else:
        errors["details"] = str(exc)
    logger.warning(
        "ndvi.request.failed type=%s status=%s",
        exc.__class__.__name__,
        status_code,
    )
    return error_response(message, errors=errors, status_code=status_code)


class NdviImageView(APIView):
    """Render the NDVI overlay PNG for a polygon and day.

    Auth: public.
    Response: `image/png` bytes, or the JSON error envelope.
    """

    permission_classes = [AllowAny]
    authentication_classes: list[type] = []

    @extend_schema(
        request=NdviImageRequestSerializer,
        responses={
            (200, "image/png"): OpenApiTypes.BINARY,
            **ndvi_error_statuses,
        },
    )
    def post(self, request: Request) -> HttpResponse | Response:
        serializer = NdviImageRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data

        try:
            image = render_ndvi_image(params["polygon"], params["date"])
        except NdviError as exc:
            return ndvi_error_response_for(exc, "Failed to fetch NDVI image")

        return HttpResponse(
            image.content,
            content_type=image.content_type,
            headers={"Cache-Control": "no-store"},
        )


class NdviStatsView(APIView):
    """Semi-monthly mean NDVI for an ad-hoc polygon.

    Auth: public.
    Response: envelope with `intervals` (`interval`, `mean_value`).
    """

    permission_classes = [AllowAny]
    authentication_classes: list[type] = []

    @extend_schema(
        request=NdviStatsRequestSerializer,
        responses={200: stats_success_response, **ndvi_error_statuses},
    )
    def post(self, request: Request) -> Response:
        serializer = NdviStatsRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data
        return _stats_response(
            params["polygon"], params["start"], params["end"]
        )


class PolygonNdviStatsView(APIView):
    """Semi-monthly mean NDVI for a stored polygon.

    Auth: IsAuthenticated; owner-only polygon lookup.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        parameters=range_query_params,
        responses={
            200: stats_success_response,
            404: ndvi_error_response,
            **ndvi_error_statuses,
        },
    )
    def get(self, request: Request, polygon_id: int) -> Response:
        polygon = _get_polygon(polygon_id, cast(int, request.user.id))
        serializer = StatsRangeSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data
        try:
            area = polygon.area_of_interest()
        except BoundsError as exc:
            return ndvi_error_response_for(exc, "Invalid polygon bounds.")
        return _stats_response(area, params["start"], params["end"])


class PolygonNdviOverlayView(APIView):
    """Map style document with the polygon's NDVI overlay and markers.

    Auth: IsAuthenticated; owner-only polygon lookup.
    Response: envelope with `layer_id` and a Mapbox GL `style` whose image
    source is inlined as a `data:` URI. Markers are included only for the
    satellite style.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        parameters=[
            OpenApiParameter(
                name="date",
                type=OpenApiTypes.DATE,
                location=OpenApiParameter.QUERY,
                required=True,
            ),
            OpenApiParameter(
                name="style",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                enum=[style.value for style in MapStyle],
            ),
        ],
        responses={
            200: overlay_success_response,
            404: ndvi_error_response,
            **ndvi_error_statuses,
        },
    )
    def get(self, request: Request, polygon_id: int) -> Response:
        owner_id = cast(int, request.user.id)
        polygon = _get_polygon(polygon_id, owner_id)
        serializer = OverlayQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data

        surface = StyleDocumentSurface()
        try:
            with OverlayRenderer(surface) as renderer:
                for kind in MARKER_KINDS:
                    renderer.update_markers(
                        kind, marker_snapshot(owner_id, kind)
                    )
                renderer.set_style(MapStyle(params["style"]))
                layer_id = async_to_sync(renderer.add_layer)(
                    polygon.area_of_interest(), params["date"]
                )
                style = surface.to_style()
        except NdviError as exc:
            return ndvi_error_response_for(
                exc, "Failed to render NDVI overlay"
            )

        return success_response({"layer_id": layer_id, "style": style})


class MapConfigView(APIView):
    """Map rendering configuration for clients.

    Auth: public. Returns 500 when no map access token is configured.
    """

    permission_classes = [AllowAny]
    authentication_classes: list[type] = []

    @extend_schema(
        responses={200: map_config_success_response, 500: ndvi_error_response}
    )
    def get(self, request: Request) -> Response:
        token = getattr(settings, "MAPBOX_ACCESS_TOKEN", "")
        if not token:
            logger.error("map.config.missing_token")
            return error_response(
                "Map access token not configured.",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return success_response(
            {
                "access_token": token,
                "default_style": MapStyle.SATELLITE.value,
                "styles": {style.value: style.url() for style in MapStyle},
                "overlay_opacity": VISIBLE_OPACITY,
            }
        )


def _get_polygon(polygon_id: int, owner_id: int) -> FarmPolygon:
    return get_object_or_404(
        FarmPolygon,
        id=polygon_id,
        owner_id=owner_id,
        is_active=True,
        schema_version__gte=CURRENT_SCHEMA_VERSION,
    )


def _stats_response(area: AreaOfInterest, start: date, end: date) -> Response:
    try:
        intervals = get_ndvi_stats(area, start, end)
    except NdviError as exc:
        return ndvi_error_response_for(
            exc, "Failed to fetch NDVI statistics"
        )
    return success_response(
        {
            "start": start.isoformat(),
            "end": end.isoformat(),
            "intervals": serialize_intervals(intervals),
        }
    )
