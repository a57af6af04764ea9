"""Domain model for market rate quotes."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal


@dataclass(frozen=True)
class RateQuote:
    """Price of one unit of an asset in currency terms.

    Attributes:
        asset: Asset code (e.g., XAU).
        currency: Quote currency code (e.g., USD).
        price: Currency amount for one unit of the asset.
        timestamp: When the quote was observed, in UTC.
    """

    asset: str
    currency: str
    price: Decimal
    timestamp: datetime

    def age(self, now: datetime) -> timedelta:
        """Return how old the quote is relative to ``now``."""
        return now - self.timestamp


__all__ = ["RateQuote"]
