"""Helpers for Decimal normalization and fixed-point storage."""

from decimal import ROUND_HALF_UP, Decimal

from src.domain.constants import AURUM_QUANTUM, MAX_BALANCE_UNITS, UNITS_PER_AURUM
from src.domain.errors import ValidationError


def coerce_decimal(value) -> Decimal:
    """Normalize numeric values to Decimal.

    Args:
        value: Raw numeric value from SQL, JSON payloads or adapters.

    Returns:
        Decimal: Normalized numeric value.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_units(amount: Decimal) -> int:
    """Convert an Aurum amount into integer storage units.

    Raises:
        ValueError: If the amount carries more than 4 decimal places or
            falls outside the 64-bit storage range.
    """
    scaled = coerce_decimal(amount) * UNITS_PER_AURUM
    if not scaled.is_finite() or scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount} exceeds 4-decimal precision")
    units = int(scaled)
    if abs(units) > MAX_BALANCE_UNITS:
        raise ValueError(f"Amount {amount} exceeds the storage range")
    return units


def amount_to_units(amount: Decimal, field: str = "amount") -> int:
    """Convert an amount into storage units for persistence.

    Raises:
        ValidationError: If the amount cannot be stored.
    """
    try:
        return to_units(amount)
    except ValueError as exc:
        raise ValidationError(field, "Amount is too large") from exc


def from_units(units) -> Decimal:
    """Convert integer storage units back into an Aurum amount."""
    return (Decimal(int(units)) / UNITS_PER_AURUM).quantize(AURUM_QUANTUM)


def quantize_decimal(value, quantum: Decimal, rounding=ROUND_HALF_UP) -> Decimal:
    """Coerce and round a numeric value to the given quantum."""
    return coerce_decimal(value).quantize(quantum, rounding=rounding)


__all__ = [
    "coerce_decimal",
    "to_units",
    "amount_to_units",
    "from_units",
    "quantize_decimal",
]
