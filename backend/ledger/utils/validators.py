"""Request validators.

Everything that arrives in a request body passes through one of these before it
reaches the split logic, so amounts are always finite floats and names are
always trimmed strings past this point.
"""
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .errors import ValidationError

MAX_DESCRIPTION_LENGTH = 200
MIN_AMOUNT = 0.01


def _is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def require_keys(payload, *keys):
    """Raise unless every key is present and non-blank in ``payload``."""
    missing = [k for k in keys if _is_blank((payload or {}).get(k))]
    if missing:
        raise ValidationError("required fields missing: " + ", ".join(missing))
    return True


def parse_number(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or None when it is not numeric.

    Numbers and numeric strings are accepted; booleans are not.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(Decimal(value.strip()))
        except (InvalidOperation, ValueError):
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_amount(value: Any) -> float:
    """Parse the authoritative expense total."""
    if _is_blank(value):
        raise ValidationError("required fields missing: amount")
    number = parse_number(value)
    if number is None:
        raise ValidationError("invalid amount type")
    if number <= 0:
        raise ValidationError("amount must be positive")
    if number < MIN_AMOUNT:
        raise ValidationError(f"amount must be at least {MIN_AMOUNT}")
    return number


def clean_name(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value.strip()


def clean_description(value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError("description must be a string")
    description = value.strip()
    if not description:
        raise ValidationError("required fields missing: description")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"description must be at most {MAX_DESCRIPTION_LENGTH} characters"
        )
    return description


def clean_date(value: Any) -> str:
    # dates are opaque strings, only presence is checked
    if not isinstance(value, str):
        raise ValidationError("date must be a string")
    date = value.strip()
    if not date:
        raise ValidationError("required fields missing: date")
    return date


def clean_name_list(value: Any, field: str) -> list:
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be an array")
    return [clean_name(item, field) for item in value]
