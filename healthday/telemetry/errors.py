"""Error taxonomy for the telemetry core.

Field-level problems (``MalformedEncodingError``) are caught by the adapters
and the field is treated as absent.  Endpoint-level problems
(``ProviderResponseError``) are collected by the sync coordinator.
``AuthorizationExpiredError`` ends a sync pass.  File and fragment errors are
raised to the caller.
"""

from __future__ import annotations


class HealthdayError(Exception):
    """Base class for all errors raised by the telemetry core."""


class MalformedEncodingError(HealthdayError, ValueError):
    """A packed timeseries token is not numeric."""

    def __init__(self, token: str, position: int) -> None:
        super().__init__(f"Non-numeric bin {token!r} at index {position}")
        self.token = token
        self.position = position


class AuthorizationExpiredError(HealthdayError):
    """The provider rejected the bearer credential (HTTP 401) or none was given."""

    def __init__(self, endpoint: str, detail: str = "") -> None:
        message = f"Authorization failed for {endpoint}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.endpoint = endpoint


class ProviderResponseError(HealthdayError):
    """Non-2xx (other than 401), transport failure or unusable body."""

    def __init__(self, endpoint: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{endpoint}: {message}")
        self.endpoint = endpoint
        self.status_code = status_code


class UnsupportedFormatError(HealthdayError):
    """An uploaded file cannot be imported; nothing from it is kept."""


class InvalidFragmentError(HealthdayError, ValueError):
    """A fragment has no usable date key."""
