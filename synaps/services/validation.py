"""Input validation helpers for API payloads.

Each validator returns a ValidationError describing the first problem it
finds, or None when the value is acceptable. Absent values are only an
error when ``required`` is set.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Pattern

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

MAX_SANITIZED_LENGTH = 10000
MAX_SANITIZED_ITEMS = 100


@dataclass
class ValidationError:
    """A single rejected field."""
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


def validate_string(
    value: Any,
    field_name: str,
    *,
    required: bool = False,
    min_length: int | None = None,
    max_length: int | None = None,
    pattern: Pattern[str] | None = None,
) -> ValidationError | None:
    if value is None:
        return ValidationError(field_name, f"{field_name} is required") if required else None
    if not isinstance(value, str):
        return ValidationError(field_name, f"{field_name} must be a string")

    trimmed = value.strip()
    if required and not trimmed:
        return ValidationError(field_name, f"{field_name} cannot be empty")
    if min_length is not None and len(trimmed) < min_length:
        return ValidationError(field_name, f"{field_name} must be at least {min_length} characters")
    if max_length is not None and len(trimmed) > max_length:
        return ValidationError(field_name, f"{field_name} must not exceed {max_length} characters")
    if pattern is not None and not pattern.search(trimmed):
        return ValidationError(field_name, f"{field_name} contains invalid characters")
    return None


def validate_array(
    value: Any,
    field_name: str,
    *,
    required: bool = False,
    max_length: int | None = None,
    item_validator: Callable[[Any], ValidationError | None] | None = None,
) -> ValidationError | None:
    if value is None:
        return ValidationError(field_name, f"{field_name} is required") if required else None
    if not isinstance(value, list):
        return ValidationError(field_name, f"{field_name} must be an array")
    if max_length is not None and len(value) > max_length:
        return ValidationError(field_name, f"{field_name} must not exceed {max_length} items")
    if item_validator is not None:
        for index, item in enumerate(value):
            error = item_validator(item)
            if error:
                return ValidationError(f"{field_name}[{index}]", error.message)
    return None


def validate_number(
    value: Any,
    field_name: str,
    *,
    required: bool = False,
    minimum: float | None = None,
    maximum: float | None = None,
    integer: bool = False,
) -> ValidationError | None:
    if value is None:
        return ValidationError(field_name, f"{field_name} is required") if required else None
    # bool is an int subclass but never a valid count
    if isinstance(value, bool):
        return ValidationError(field_name, f"{field_name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return ValidationError(field_name, f"{field_name} must be a number")
    if number != number:
        return ValidationError(field_name, f"{field_name} must be a number")

    if integer and not number.is_integer():
        return ValidationError(field_name, f"{field_name} must be an integer")
    if minimum is not None and number < minimum:
        return ValidationError(field_name, f"{field_name} must be at least {minimum}")
    if maximum is not None and number > maximum:
        return ValidationError(field_name, f"{field_name} must not exceed {maximum}")
    return None


def validate_uuid(value: Any, field_name: str, *, required: bool = False) -> ValidationError | None:
    if value is None:
        return ValidationError(field_name, f"{field_name} is required") if required else None
    if not isinstance(value, str):
        return ValidationError(field_name, f"{field_name} must be a string")
    if not UUID_PATTERN.match(value):
        return ValidationError(field_name, f"{field_name} must be a valid UUID")
    return None


def sanitize_string(value: str) -> str:
    """Trim, drop angle brackets and cap the length."""
    return value.strip().replace("<", "").replace(">", "")[:MAX_SANITIZED_LENGTH]


def sanitize_array(value: Any) -> list[str]:
    """Keep only string items, sanitised, up to the item cap."""
    if not isinstance(value, list):
        return []
    return [sanitize_string(item) for item in value if isinstance(item, str)][:MAX_SANITIZED_ITEMS]
