"""Market data adapters implementing RateProviderPort."""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable

import requests

from src.application.ports.rate_provider import RateProviderPort
from src.domain.constants import DEFAULT_CURRENCY, DEFAULT_GOLD_RATE
from src.domain.errors import RateUnavailable
from src.domain.models.rates import RateQuote
from src.infrastructure.logging.logger import get_app_logger


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FixedRateProvider(RateProviderPort):
    """Provider serving a constant price, timestamped at call time.

    Useful for local development and tests without an API key.
    """

    def __init__(
        self,
        price: Decimal = DEFAULT_GOLD_RATE,
        currency: str = DEFAULT_CURRENCY,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._price = price
        self._currency = currency
        self._clock = clock

    def current_rate(self, asset: str, timeout: float | None = None) -> RateQuote:
        return RateQuote(
            asset=asset,
            currency=self._currency,
            price=self._price,
            timestamp=self._clock(),
        )


class HttpRateProvider(RateProviderPort):
    """GoldAPI-style HTTP provider.

    Calls ``GET {base_url}/{asset}/{currency}`` with an ``x-access-token``
    header and expects ``{"price": <number>, "timestamp": <unix seconds>}``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        currency: str = DEFAULT_CURRENCY,
        session: requests.Session | None = None,
        default_timeout: float = 10.0,
        logger=None,
    ) -> None:
        """Initialize the provider.

        Args:
            base_url: API root URL.
            api_key: Access token; requests fail upstream when missing.
            currency: Currency the asset is priced in.
            session: Optional ``requests.Session`` (injected in tests).
            default_timeout: Timeout used when a call passes none.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._currency = currency
        self._session = session or requests.Session()
        self._default_timeout = default_timeout
        self._logger = logger or get_app_logger()

    def current_rate(self, asset: str, timeout: float | None = None) -> RateQuote:
        """Fetch the latest quote for ``asset``.

        Raises:
            RateUnavailable: On timeouts, HTTP errors or malformed payloads.
        """
        url = f"{self._base_url}/{asset}/{self._currency}"
        try:
            response = self._session.get(
                url,
                headers={"x-access-token": self._api_key or ""},
                timeout=timeout if timeout is not None else self._default_timeout,
            )
            response.raise_for_status()
            data = response.json()
            price = Decimal(str(data["price"]))
            if not price.is_finite():
                raise ValueError(f"price is not a finite number: {price}")
            timestamp = datetime.fromtimestamp(
                float(data["timestamp"]),
                tz=timezone.utc,
            )
        except requests.exceptions.Timeout as exc:
            self._logger.warning(f"Timeout fetching {asset}/{self._currency} rate")
            raise RateUnavailable(
                f"Timed out fetching {asset}/{self._currency} rate"
            ) from exc
        except requests.exceptions.RequestException as exc:
            self._logger.warning(f"HTTP error fetching rate: {exc}")
            raise RateUnavailable(
                f"Rate API request failed for {asset}/{self._currency}"
            ) from exc
        except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
            self._logger.warning(f"Invalid rate payload from {url}: {exc}")
            raise RateUnavailable(
                f"Invalid rate payload for {asset}/{self._currency}"
            ) from exc
        return RateQuote(
            asset=asset,
            currency=self._currency,
            price=price,
            timestamp=timestamp,
        )


__all__ = ["FixedRateProvider", "HttpRateProvider"]
