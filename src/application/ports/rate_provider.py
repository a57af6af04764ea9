"""Application port for market data."""

from typing import Protocol

from src.domain.models.rates import RateQuote


class RateProviderPort(Protocol):
    """Port supplying the current price of an asset."""

    def current_rate(self, asset: str, timeout: float | None = None) -> RateQuote:
        """Return the latest quote for ``asset``.

        Raises:
            RateUnavailable: If no quote can be obtained within ``timeout``.
        """


__all__ = ["RateProviderPort"]
