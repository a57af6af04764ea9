"""Unit conversion between currency and Aurum."""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

from src.domain.constants import AURUM_QUANTUM, USD_QUANTUM


def usd_to_aurum(usd_amount: Decimal, price: Decimal) -> Decimal:
    """Return the Aurum bought by ``usd_amount`` at ``price`` per unit.

    The result is truncated to 4 decimals so a purchase never credits more
    gold than was paid for.
    """
    return (usd_amount / price).quantize(AURUM_QUANTUM, rounding=ROUND_DOWN)


def aurum_to_usd(amount: Decimal, price: Decimal) -> Decimal:
    """Return the currency value of ``amount`` Aurum at ``price``."""
    return (amount * price).quantize(USD_QUANTUM, rounding=ROUND_HALF_UP)


__all__ = ["usd_to_aurum", "aurum_to_usd"]
