from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any

TWO_PLACES = Decimal("0.01")

# Largest price the Numeric(12, 2) columns can hold
MAX_PRICE = Decimal("9999999999.99")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., deleting a product that has orders)."""


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half away from zero."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def money_to_str(value) -> str | None:
    if value is None:
        return None
    return str(round_money(Decimal(value)))


def parse_price(value: Any, field: str = "price") -> Decimal:
    """
    Parse a client-supplied price into a non-negative Decimal with two places.

    Accepts ints, decimal strings and floats (floats go through str() so 0.1
    stays 0.1). Booleans and scientific notation are rejected.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f"{field} is required")
        if "e" in value.lower():
            raise ValidationError(f"{field} must be a plain decimal number")
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Valid {field} is required")
    if not price.is_finite() or price < 0:
        raise ValidationError(f"Valid {field} is required")
    if price > MAX_PRICE:
        raise ValidationError(f"{field} exceeds maximum allowed value")
    return round_money(price)


def parse_stock_count(value: Any) -> int:
    """Initial stock for a new product; missing or unusable input means 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        count = int(str(value).strip())
    except ValueError:
        return 0
    return max(count, 0)


def coerce_quantity(value: Any) -> int:
    """
    Cart quantity as a whole number.

    Fractions are floored; anything non-numeric becomes 0 so the caller
    drops the item instead of failing the whole cart.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return 0
    if not number.is_finite():
        return 0
    return int(number.to_integral_value(rounding=ROUND_FLOOR))


def clean_text(value: Any) -> str | None:
    """Strip strings; empty strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def require_text(payload: dict, field: str) -> str:
    text = clean_text(payload.get(field))
    if not text:
        raise ValidationError(f"{field} is required")
    return text
