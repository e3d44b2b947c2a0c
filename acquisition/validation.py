"""Synchronous input gate for location queries.

Runs before any cache lookup or network call.  Rejections raise
:class:`~acquisition.errors.ValidationError` with a :class:`ValidationCode`.
"""
from __future__ import annotations

import logging
import math
import re
import unicodedata
from typing import Optional, Pattern, Sequence

from .entities import Coordinates
from .errors import ValidationCode, ValidationError


logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 100
SEARCH_MAX_LENGTH = 50
MAX_HISTORY_DAYS = 30

INJECTION_PATTERNS: Sequence[Pattern[str]] = (
    re.compile(r"\b(SELECT|INSERT|UPDATE|DELETE|DROP|UNION|EXEC|ALTER|CREATE|SHOW|GRANT|REVOKE|TRUNCATE)\b", re.IGNORECASE),
    re.compile(r"\b(OR|AND|NOT)\b\s+['\"]?\w*['\"]?\s*(=|<>|!=|<|>|\bLIKE\b)", re.IGNORECASE),
    re.compile(r";|--|/\*|\*/"),
    re.compile(r"\|\||&&|>>|<<"),
    re.compile(r"\$\{?|[{}\[\]`]"),
    re.compile(r"\b(true|false|null|undefined)\b", re.IGNORECASE),
)

# Latin letters including accented ranges (without the multiplication and
# division signs), combining diacritics, digits and the punctuation found in
# real place names.
SAFE_PATTERN = re.compile(
    r"^[A-Za-z\u00C0-\u00D6\u00D8-\u00F6\u00F8-\u024F\u0300-\u036F0-9 \-,.'()]+$"
)


class InputValidator:
    """Validate free-text location queries."""

    def __init__(self, max_length: int = DEFAULT_MAX_LENGTH) -> None:
        self.max_length = max_length

    def validate(self, raw: object, max_length: Optional[int] = None) -> str:
        limit = max_length or self.max_length
        if not isinstance(raw, str):
            raise ValidationError(ValidationCode.INVALID_CHARACTERS, "input must be a string")
        trimmed = raw.strip()
        if not trimmed:
            raise ValidationError(ValidationCode.EMPTY_INPUT)
        if len(trimmed) > limit:
            raise ValidationError(ValidationCode.TOO_LONG, f"input longer than {limit} characters")
        for pattern in INJECTION_PATTERNS:
            if pattern.search(trimmed):
                logger.warning("Rejected suspicious location query (length=%d)", len(trimmed))
                raise ValidationError(ValidationCode.INJECTION_SUSPECTED)
        if not SAFE_PATTERN.match(trimmed):
            raise ValidationError(ValidationCode.INVALID_CHARACTERS)

        normalized = unicodedata.normalize("NFKC", trimmed)
        if normalized != trimmed:
            logger.warning("Unicode normalization applied to location query")
            # compatibility forms can expand outside the allowed set
            if not SAFE_PATTERN.match(normalized):
                raise ValidationError(ValidationCode.INVALID_CHARACTERS)
        return normalized

    def validate_search(self, raw: object) -> str:
        return self.validate(raw, SEARCH_MAX_LENGTH)


def validate_coordinates(latitude: object, longitude: object) -> Coordinates:
    try:
        lat = float(latitude)  # type: ignore[arg-type]
        lon = float(longitude)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValidationError(ValidationCode.INVALID_COORDINATES, "coordinates must be numbers") from exc
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise ValidationError(ValidationCode.INVALID_COORDINATES, "coordinates must be finite")
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
        raise ValidationError(ValidationCode.INVALID_COORDINATES, f"coordinates out of range: {lat}, {lon}")
    return Coordinates(lat, lon)


def validate_days(days: object) -> int:
    if isinstance(days, bool):
        raise ValidationError(ValidationCode.INVALID_DAYS)
    try:
        value = int(days)  # type: ignore[call-overload]
    except (TypeError, ValueError) as exc:
        raise ValidationError(ValidationCode.INVALID_DAYS) from exc
    if value != days and not isinstance(days, str):
        raise ValidationError(ValidationCode.INVALID_DAYS)
    if not 1 <= value <= MAX_HISTORY_DAYS:
        raise ValidationError(ValidationCode.INVALID_DAYS, f"days out of range: {value}")
    return value


__all__ = [
    "InputValidator",
    "validate_coordinates",
    "validate_days",
    "DEFAULT_MAX_LENGTH",
    "SEARCH_MAX_LENGTH",
    "MAX_HISTORY_DAYS",
]
