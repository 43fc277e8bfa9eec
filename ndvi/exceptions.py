"""Error taxonomy for the NDVI pipeline.

Upstream errors carry the HTTP status (when there was one) and a trimmed
body snippet for diagnostics.
"""

from __future__ import annotations

MAX_ERROR_SNIPPET_CHARS = 1600


def trim_snippet(text: str | None) -> str | None:
    if not text:
        return None
    normalized = " ".join(text.strip().splitlines())
    if not normalized:
        return None
    if len(normalized) > MAX_ERROR_SNIPPET_CHARS:
        normalized = f"{normalized[:MAX_ERROR_SNIPPET_CHARS]}..."
    return normalized


class NdviError(Exception):
    """Base class for NDVI pipeline failures."""


class ConfigurationError(NdviError):
    """A required credential or setting is missing."""


class AuthError(NdviError):
    """Credentials could not be turned into a usable access token."""


class CredentialsMissingError(ConfigurationError, AuthError):
    """Client id or secret is absent; raised before any network call."""


class UpstreamError(NdviError):
    """Non-success outcome from a remote Sentinel Hub endpoint."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        snippet: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.snippet = snippet
        full = message
        if status_code is not None:
            full = f"{full} status={status_code}"
        if snippet:
            full = f"{full} body={snippet}"
        super().__init__(full)
        self.summary = message


class UpstreamAuthError(UpstreamError, AuthError):
    """Token endpoint refused the credentials or the token was rejected."""


class UpstreamRequestError(UpstreamError):
    """4xx from the processing API, usually a bad polygon or date."""


class UpstreamServerError(UpstreamError):
    """5xx, transport failure or an unusable success body."""


class UpstreamTimeoutError(UpstreamError):
    """No response within the bounded wait."""


class BoundsError(NdviError, ValueError):
    """Area of interest is malformed or has a degenerate bounding box."""


class ImageLoadError(NdviError):
    """Raster bytes could not be decoded in time."""


def upstream_error_for_status(
    status_code: int, message: str, snippet: str | None = None
) -> UpstreamError:
    """Classify a non-2xx processing/statistics API response."""

    error_cls: type[UpstreamError]
    if status_code in (401, 403):
        error_cls = UpstreamAuthError
    elif 400 <= status_code < 500:
        error_cls = UpstreamRequestError
    else:
        error_cls = UpstreamServerError
    return error_cls(message, status_code=status_code, snippet=snippet)
