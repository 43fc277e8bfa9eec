"""Response envelopes shared by every API endpoint.

Success: {"status": 0, "message": ..., "data": ..., "errors": null}
Failure: {"status": 1, "message": ..., "error": ..., "data": null,
"errors": ...}. The top-level `error` string mirrors `message` so
clients that only look for `{error}` keep working.
"""

from __future__ import annotations

from typing import TypeAlias

from rest_framework import status
from rest_framework.response import Response

JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]


def success_response(
    data: JSONValue | None,
    message: str = "OK",
    *,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    payload: dict[str, JSONValue] = {
        "status": 0,
        "message": message,
        "data": data,
        "errors": None,
    }
    return Response(payload, status=status_code)


def error_payload(
    message: str, *, errors: JSONValue | None = None
) -> dict[str, JSONValue]:
    return {
        "status": 1,
        "message": message,
        "error": message,
        "data": None,
        "errors": errors,
    }


def error_response(
    message: str,
    *,
    errors: JSONValue | None = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> Response:
    return Response(error_payload(message, errors=errors), status=status_code)
