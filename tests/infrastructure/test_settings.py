"""Tests for infrastructure settings."""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

from src.infrastructure import settings as settings_module
from src.infrastructure.settings import LedgerSettings

_VARIABLES = (
    "LEDGER_BACKEND",
    "LEDGER_REST_URL",
    "LEDGER_REST_API_KEY",
    "RATE_PROVIDER",
    "RATE_API_URL",
    "RATE_API_KEY",
    "FIXED_GOLD_RATE",
    "GOLD_ASSET",
    "GOLD_CURRENCY",
    "RATE_MAX_AGE_SECONDS",
    "MIN_PURCHASE_USD",
    "LEDGER_TIMEOUT_SECONDS",
)


def _clear_env(monkeypatch) -> MagicMock:
    for name in _VARIABLES:
        monkeypatch.delenv(name, raising=False)
    logger = MagicMock()
    monkeypatch.setattr(settings_module, "get_app_logger", lambda: logger)
    return logger


def test_from_env_defaults(monkeypatch) -> None:
    """Missing variables fall back to the local-development defaults."""
    _clear_env(monkeypatch)

    settings = LedgerSettings.from_env()

    assert settings.backend == "sqlalchemy"
    assert settings.rate_provider == "fixed"
    assert settings.fixed_rate == Decimal("1850.25")
    assert settings.asset == "XAU"
    assert settings.currency == "USD"
    assert settings.max_rate_age == timedelta(seconds=60)
    assert settings.min_purchase_usd == Decimal("10.00")
    assert settings.timeout_seconds == 10.0


def test_from_env_reads_overrides(monkeypatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("LEDGER_BACKEND", " REST ")
    monkeypatch.setenv("LEDGER_REST_URL", "https://project.example.co/rest/v1")
    monkeypatch.setenv("LEDGER_REST_API_KEY", "service-key")
    monkeypatch.setenv("RATE_PROVIDER", "http")
    monkeypatch.setenv("RATE_API_KEY", "token")
    monkeypatch.setenv("GOLD_ASSET", "xag")
    monkeypatch.setenv("GOLD_CURRENCY", "eur")
    monkeypatch.setenv("RATE_MAX_AGE_SECONDS", "30")
    monkeypatch.setenv("MIN_PURCHASE_USD", "25.00")

    settings = LedgerSettings.from_env()

    assert settings.backend == "rest"
    assert settings.rest_url == "https://project.example.co/rest/v1"
    assert settings.rest_api_key == "service-key"
    assert settings.rate_provider == "http"
    assert settings.rate_api_key == "token"
    assert settings.asset == "XAG"
    assert settings.currency == "EUR"
    assert settings.max_rate_age == timedelta(seconds=30)
    assert settings.min_purchase_usd == Decimal("25.00")


def test_invalid_numbers_warn_and_use_defaults(monkeypatch) -> None:
    logger = _clear_env(monkeypatch)
    monkeypatch.setenv("FIXED_GOLD_RATE", "-5")
    monkeypatch.setenv("MIN_PURCHASE_USD", "ten")
    monkeypatch.setenv("LEDGER_TIMEOUT_SECONDS", "soon")

    settings = LedgerSettings.from_env()

    assert settings.fixed_rate == Decimal("1850.25")
    assert settings.min_purchase_usd == Decimal("10.00")
    assert settings.timeout_seconds == 10.0
    assert logger.warning.call_count == 3
