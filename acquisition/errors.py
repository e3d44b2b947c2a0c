"""Error taxonomy for the weather acquisition pipeline.

Every failure carries an :class:`ErrorKind` so that callers branch on the kind
of outcome instead of inspecting message text.  Messages shown to end users
come from :data:`USER_MESSAGES` only; the exception text itself may contain
internal details (status codes, provider names) and is meant for logs.
"""
from __future__ import annotations

import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    TIMEOUT = "timeout"
    PROTOCOL = "protocol"
    NOT_FOUND = "not_found"
    UPSTREAM = "upstream"
    QUOTA = "quota"
    SCHEMA = "schema"

    @property
    def retryable(self) -> bool:
        return self is ErrorKind.UPSTREAM

    @property
    def fallback_eligible(self) -> bool:
        """Whether the pipeline degrades to synthesized data for this kind."""
        return self in (ErrorKind.TIMEOUT, ErrorKind.UPSTREAM, ErrorKind.QUOTA, ErrorKind.SCHEMA)


class Retryability(str, enum.Enum):
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


class ValidationCode(str, enum.Enum):
    EMPTY_INPUT = "empty_input"
    TOO_LONG = "too_long"
    INJECTION_SUSPECTED = "injection_suspected"
    INVALID_CHARACTERS = "invalid_characters"
    INVALID_COORDINATES = "invalid_coordinates"
    INVALID_DAYS = "invalid_days"


USER_MESSAGES = {
    ErrorKind.VALIDATION: "Please enter a valid city name.",
    ErrorKind.TIMEOUT: "Request timed out. Please try again.",
    ErrorKind.PROTOCOL: "Invalid request configuration.",
    ErrorKind.NOT_FOUND: "City not found.",
    ErrorKind.UPSTREAM: "Weather service is unavailable. Please try again later.",
    ErrorKind.QUOTA: "Weather service is busy. Please try again later.",
    ErrorKind.SCHEMA: "Weather service returned invalid data.",
}

VALIDATION_MESSAGES = {
    ValidationCode.EMPTY_INPUT: "Please enter a city name.",
    ValidationCode.TOO_LONG: "City name is too long.",
    ValidationCode.INJECTION_SUSPECTED: "Invalid input provided.",
    ValidationCode.INVALID_CHARACTERS: (
        "Please enter a valid city name with only letters, numbers, spaces, hyphens, "
        "apostrophes, commas, dots, or parentheses."
    ),
    ValidationCode.INVALID_COORDINATES: "Latitude must be between -90 and 90 and longitude between -180 and 180.",
    ValidationCode.INVALID_DAYS: "Days must be a whole number between 1 and 30.",
}

GENERIC_MESSAGE = "Unable to fetch weather data. Please try again."


class WeatherError(RuntimeError):
    """Base error for the acquisition pipeline."""

    kind: ErrorKind = ErrorKind.UPSTREAM

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts

    @property
    def user_message(self) -> str:
        return USER_MESSAGES[self.kind]


class ValidationError(WeatherError):
    """Malformed or unsafe input, rejected before any network call."""

    kind = ErrorKind.VALIDATION

    def __init__(self, code: ValidationCode, message: Optional[str] = None) -> None:
        super().__init__(message or code.value)
        self.code = code

    @property
    def user_message(self) -> str:
        return VALIDATION_MESSAGES[self.code]


class ProviderError(WeatherError):
    """Base provider error."""


class RequestTimeoutError(ProviderError):
    kind = ErrorKind.TIMEOUT


class ProtocolError(ProviderError):
    """Raised for request targets that are not plain http(s) URLs."""

    kind = ErrorKind.PROTOCOL


class NotFoundError(ProviderError):
    """Upstream reported that the requested location does not exist."""

    kind = ErrorKind.NOT_FOUND


class UpstreamError(ProviderError):
    kind = ErrorKind.UPSTREAM

    def __init__(self, message: str, *, status_code: Optional[int] = None, attempts: int = 0) -> None:
        super().__init__(message, attempts=attempts)
        self.status_code = status_code


class QuotaExceeded(UpstreamError):
    """Raised when a provider reports a quota/usage limit issue."""

    kind = ErrorKind.QUOTA


class SchemaError(ProviderError):
    """The normalizer could not find the minimum fields in a payload."""

    kind = ErrorKind.SCHEMA


def classify_error(error: BaseException) -> Retryability:
    """Decide whether ``error`` is worth another attempt.

    Only upstream failures without a status (network errors) or with a 5xx
    status are retried; everything else, including every 4xx, is terminal.
    """
    if not isinstance(error, WeatherError) or not error.kind.retryable:
        return Retryability.TERMINAL
    status = getattr(error, "status_code", None)
    if status is not None and status < 500:
        return Retryability.TERMINAL
    return Retryability.RETRYABLE


def user_message(error: BaseException) -> str:
    if isinstance(error, WeatherError):
        return error.user_message
    return GENERIC_MESSAGE


__all__ = [
    "ErrorKind",
    "Retryability",
    "ValidationCode",
    "USER_MESSAGES",
    "VALIDATION_MESSAGES",
    "GENERIC_MESSAGE",
    "WeatherError",
    "ValidationError",
    "ProviderError",
    "RequestTimeoutError",
    "ProtocolError",
    "NotFoundError",
    "UpstreamError",
    "QuotaExceeded",
    "SchemaError",
    "classify_error",
    "user_message",
]
