"""Settings helpers for infrastructure adapters."""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation
import os

from src.domain.constants import (
    DEFAULT_ASSET,
    DEFAULT_CURRENCY,
    DEFAULT_GOLD_RATE,
    MIN_PURCHASE_USD,
)
from src.infrastructure.logging.logger import get_app_logger


@dataclass(frozen=True)
class LedgerSettings:
    """Settings for selecting ledger and market data adapters.

    Attributes:
        backend: Ledger persistence backend (sqlalchemy or rest).
        rest_url: Base URL of the REST backend (rest backend only).
        rest_api_key: API key for the REST backend.
        rate_provider: Market data adapter (fixed or http).
        rate_api_url: Base URL of the HTTP rate API.
        rate_api_key: Access token for the HTTP rate API.
        fixed_rate: Price served by the fixed rate provider.
        asset: Asset code priced by the rate provider.
        currency: Currency the asset is priced in.
        max_rate_age_seconds: Oldest quote accepted for pricing.
        min_purchase_usd: Smallest purchase accepted.
        timeout_seconds: Default deadline for a ledger operation.
    """

    backend: str = "sqlalchemy"
    rest_url: str | None = None
    rest_api_key: str | None = None
    rate_provider: str = "fixed"
    rate_api_url: str = "https://www.goldapi.io/api"
    rate_api_key: str | None = None
    fixed_rate: Decimal = DEFAULT_GOLD_RATE
    asset: str = DEFAULT_ASSET
    currency: str = DEFAULT_CURRENCY
    max_rate_age_seconds: float = 60.0
    min_purchase_usd: Decimal = MIN_PURCHASE_USD
    timeout_seconds: float = 10.0

    @property
    def max_rate_age(self) -> timedelta:
        return timedelta(seconds=self.max_rate_age_seconds)

    @classmethod
    def from_env(cls) -> "LedgerSettings":
        """Build settings from environment variables.

        Returns:
            LedgerSettings: Settings sourced from environment variables.
        """
        logger = get_app_logger()
        defaults = cls()
        return cls(
            backend=os.getenv("LEDGER_BACKEND", defaults.backend).strip().lower(),
            rest_url=os.getenv("LEDGER_REST_URL") or None,
            rest_api_key=os.getenv("LEDGER_REST_API_KEY") or None,
            rate_provider=os.getenv(
                "RATE_PROVIDER",
                defaults.rate_provider,
            ).strip().lower(),
            rate_api_url=os.getenv("RATE_API_URL", defaults.rate_api_url),
            rate_api_key=os.getenv("RATE_API_KEY") or None,
            fixed_rate=cls._read_decimal(
                "FIXED_GOLD_RATE",
                defaults.fixed_rate,
                logger,
            ),
            asset=os.getenv("GOLD_ASSET", defaults.asset).strip().upper(),
            currency=os.getenv("GOLD_CURRENCY", defaults.currency).strip().upper(),
            max_rate_age_seconds=cls._read_float(
                "RATE_MAX_AGE_SECONDS",
                defaults.max_rate_age_seconds,
                logger,
            ),
            min_purchase_usd=cls._read_decimal(
                "MIN_PURCHASE_USD",
                defaults.min_purchase_usd,
                logger,
            ),
            timeout_seconds=cls._read_float(
                "LEDGER_TIMEOUT_SECONDS",
                defaults.timeout_seconds,
                logger,
            ),
        )

    @staticmethod
    def _read_decimal(name: str, default: Decimal, logger) -> Decimal:
        """Read a positive Decimal from the environment.

        Args:
            name: Environment variable name.
            default: Value used when missing or invalid.
            logger: Logger used for warnings.

        Returns:
            Decimal: Parsed value or the default.
        """
        raw = os.getenv(name)
        if not raw:
            return default
        try:
            value = Decimal(raw.strip())
        except InvalidOperation:
            value = None
        if value is None or not value.is_finite() or value <= 0:
            logger.warning(f"Invalid {name}={raw!r}; using {default}")
            return default
        return value

    @staticmethod
    def _read_float(name: str, default: float, logger) -> float:
        raw = os.getenv(name)
        if not raw:
            return default
        try:
            value = float(raw)
        except ValueError:
            value = -1.0
        if value <= 0:
            logger.warning(f"Invalid {name}={raw!r}; using {default}")
            return default
        return value


__all__ = ["LedgerSettings"]
