"""Shared parsing helpers for CLI and environment value normalization."""

from __future__ import annotations

import math

from .errors import ConfigurationError


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_positive_int(value: object, field_name: str) -> int:
    """Parse a strictly positive integer from an int or textual value.

    Raises:
        ConfigurationError: If the value is not an integer greater than zero.
    """

    if isinstance(value, bool):
        raise ConfigurationError(f"`{field_name}` must be a positive integer.")
    if isinstance(value, int):
        parsed = value
    else:
        text = normalize_optional_string(value)
        try:
            parsed = int(text) if text is not None else 0
        except ValueError as exc:
            raise ConfigurationError(
                f"`{field_name}` must be a positive integer, got `{text}`."
            ) from exc
    if parsed <= 0:
        raise ConfigurationError(f"`{field_name}` must be a positive integer.")
    return parsed


def parse_non_negative_float(value: object, field_name: str) -> float:
    """Parse a float that is zero or greater from a number or textual value."""

    if isinstance(value, bool):
        raise ConfigurationError(f"`{field_name}` must be a non-negative number.")
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        text = normalize_optional_string(value)
        try:
            parsed = float(text) if text is not None else -1.0
        except ValueError as exc:
            raise ConfigurationError(
                f"`{field_name}` must be a non-negative number, got `{text}`."
            ) from exc
    if math.isnan(parsed) or parsed < 0.0:
        raise ConfigurationError(f"`{field_name}` must be a non-negative number.")
    return parsed
