from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from rest_framework.response import Response


JSONValue: TypeAlias = (
    None
    | bool
    | int
    | float
    | str
    | list["JSONValue"]
    | dict[str, "JSONValue"]
)


def _to_json_value(value: object) -> JSONValue:
    if value is None or isinstance(value, str | int | float | bool):
        return value
    if isinstance(value, Mapping):
        return {str(k): _to_json_value(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_to_json_value(v) for v in value]
    return str(value)


def _first_message(detail: JSONValue) -> str | None:
    """Depth-first first string, so field errors surface as `error`."""

    if isinstance(detail, str):
        return detail
    if isinstance(detail, dict):
        values: list[JSONValue] = list(detail.values())
    elif isinstance(detail, list):
        values = detail
    else:
        return None
    for value in values:
        message = _first_message(value)
        if message:
            return message
    return None


def custom_exception_handler(
    exc: Exception,
    context: dict[str, Any],
) -> Response:
    # Lazy imports: safe even if settings aren't configured at import time.
    from rest_framework import status
    from rest_framework.exceptions import Throttled, ValidationError
    from rest_framework.response import Response
    from rest_framework.views import exception_handler as drf_exception_handler

    from config.api.responses import error_payload

    response = drf_exception_handler(exc, context)

    if response is None:
        return Response(
            error_payload("Internal server error"),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    detail = _to_json_value(response.data)

    if isinstance(exc, Throttled):
        errors: dict[str, JSONValue]
        if isinstance(detail, dict):
            errors = {**detail}
        else:
            errors = {"detail": detail}

        wait = getattr(exc, "wait", None)
        if wait is not None:
            errors["wait"] = wait

        response.data = error_payload("Too Many Requests", errors=errors)
        return response

    message = "Request failed"
    if isinstance(exc, ValidationError):
        message = _first_message(detail) or "Invalid request."
    elif isinstance(detail, dict):
        maybe = detail.get("detail")
        if isinstance(maybe, str):
            message = maybe

    response.data = error_payload(message, errors=detail)
    return response
