"""Use case returning a fresh gold rate quote."""

from datetime import datetime, timedelta, timezone
from typing import Callable

from src.application.ports.rate_provider import RateProviderPort
from src.domain.constants import DEFAULT_ASSET
from src.domain.models.rates import RateQuote
from src.domain.services.validation import validate_quote
from src.infrastructure.logging.logger import get_app_logger

DEFAULT_MAX_RATE_AGE = timedelta(seconds=60)


def utc_now() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


def fetch_fresh_quote(
    rate_provider: RateProviderPort,
    asset: str,
    max_age: timedelta,
    now: Callable[[], datetime] = utc_now,
    timeout: float | None = None,
) -> RateQuote:
    """Fetch a quote and reject it when stale, future-dated or not a price.

    Args:
        rate_provider: Market data port.
        asset: Asset code to price.
        max_age: Oldest quote accepted.
        now: Clock returning aware UTC datetimes.
        timeout: Optional bound on the provider call, in seconds.

    Returns:
        RateQuote: A quote usable for pricing.

    Raises:
        RateUnavailable: If no usable quote could be obtained.
    """
    quote = rate_provider.current_rate(asset, timeout=timeout)
    return validate_quote(quote, now(), max_age)


class GetCurrentRateUseCase:
    """Expose the current rate to presentation layers."""

    def __init__(
        self,
        rate_provider: RateProviderPort,
        asset: str = DEFAULT_ASSET,
        max_age: timedelta = DEFAULT_MAX_RATE_AGE,
        clock: Callable[[], datetime] = utc_now,
        logger=None,
    ) -> None:
        """Initialize the use case.

        Args:
            rate_provider: Market data port.
            asset: Default asset code.
            max_age: Oldest quote accepted.
            clock: Clock returning aware UTC datetimes.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._rate_provider = rate_provider
        self._asset = asset
        self._max_age = max_age
        self._clock = clock
        self._logger = logger or get_app_logger()

    def execute(
        self,
        asset: str | None = None,
        timeout: float | None = None,
    ) -> RateQuote:
        """Return a fresh quote for ``asset`` (default asset when omitted)."""
        quote = fetch_fresh_quote(
            self._rate_provider,
            asset or self._asset,
            self._max_age,
            now=self._clock,
            timeout=timeout,
        )
        self._logger.debug(
            f"Rate {quote.asset}/{quote.currency}={quote.price} "
            f"at {quote.timestamp.isoformat()}"
        )
        return quote


__all__ = [
    "GetCurrentRateUseCase",
    "fetch_fresh_quote",
    "utc_now",
    "DEFAULT_MAX_RATE_AGE",
]
