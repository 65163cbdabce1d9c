from __future__ import annotations

from typing import Any, Iterable

from .errors import ValidationError


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Upper bound for a single line or adjustment quantity
MAX_QUANTITY = 100_000

# Largest row id the database integer column can hold
MAX_ID = 2**63 - 1


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for JSON input.

    Rejects floats, booleans, scientific notation and decimal strings so that
    money (cents) and stock quantities round-trip exactly.
    """
    if value is None:
        raise ValidationError(f"{field} is required", details={"field": field})

    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value

    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer", details={"field": field})
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(
                f"{field} must be a plain integer (scientific notation not allowed)",
                details={"field": field},
            )
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)", details={"field": field})
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer", details={"field": field})

    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal", details={"field": field})

    raise ValidationError(f"{field} must be an integer", details={"field": field})


def require_id(value: Any, field: str) -> int:
    """Row identifier: a positive integer within the database integer range."""
    row_id = coerce_int(value, field)
    if row_id < 1 or row_id > MAX_ID:
        raise ValidationError(f"{field} is not a valid id", details={"field": field, "value": row_id})
    return row_id


def require_quantity(value: Any, field: str = "quantity", *, minimum: int = 1) -> int:
    qty = coerce_int(value, field)
    if qty < minimum:
        raise ValidationError(f"{field} must be at least {minimum}", details={"field": field, "value": qty})
    if qty > MAX_QUANTITY:
        raise ValidationError(f"{field} must not exceed {MAX_QUANTITY}", details={"field": field, "value": qty})
    return qty


def require_cents(value: Any, field: str) -> int:
    cents = coerce_int(value, field)
    if cents < 0:
        raise ValidationError(f"{field} cannot be negative", details={"field": field, "value": cents})
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} exceeds maximum allowed", details={"field": field, "value": cents})
    return cents


def require_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    allowed = tuple(choices)
    if value not in allowed:
        raise ValidationError(
            f"{field} must be one of {', '.join(allowed)}",
            details={"field": field, "value": value, "allowed": list(allowed)},
        )
    return value


def optional_text(value: Any, field: str, *, max_length: int = 255) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", details={"field": field})
    stripped = value.strip()
    if not stripped:
        return None
    if len(stripped) > max_length:
        raise ValidationError(
            f"{field} exceeds maximum length of {max_length}",
            details={"field": field, "max_length": max_length},
        )
    return stripped


def require_text(value: Any, field: str, *, max_length: int = 255) -> str:
    text = optional_text(value, field, max_length=max_length)
    if text is None:
        raise ValidationError(f"{field} is required", details={"field": field})
    return text
