"""drf-spectacular helpers for documenting the project's response envelopes.

The runtime response helpers in `config.api.responses` and the global DRF
exception handler wrap nearly all API responses in a consistent JSON envelope.
Error envelopes repeat `message` as a top-level `error` string and always
carry `data: null`.
"""

from __future__ import annotations

from drf_spectacular.utils import inline_serializer
from rest_framework import serializers
from rest_framework.serializers import Serializer


def success_envelope_serializer(
    name: str,
    *,
    data: serializers.Field,
) -> Serializer:
    """Build an OpenAPI schema matching `success_response`."""

    return inline_serializer(
        name=name,
        fields={
            "status": serializers.IntegerField(),
            "message": serializers.CharField(),
            "data": data,
            "errors": serializers.JSONField(allow_null=True),
        },
    )


def error_envelope_serializer(name: str) -> Serializer:
    """Build an OpenAPI schema matching `error_response`."""

    return inline_serializer(
        name=name,
        fields={
            "status": serializers.IntegerField(),
            "message": serializers.CharField(),
            "error": serializers.CharField(),
            "data": serializers.JSONField(allow_null=True),
            "errors": serializers.JSONField(allow_null=True),
        },
    )
