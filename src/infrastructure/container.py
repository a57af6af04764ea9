"""Composition root for wiring infrastructure adapters."""

from src.application.ports.database import DatabaseEnginePort
from src.application.ports.identity import IdentityProviderPort
from src.application.ports.ledger_repository import LedgerRepositoryPort
from src.application.ports.rate_provider import RateProviderPort
from src.application.use_cases.apply_transfer import LedgerTransferService
from src.application.use_cases.get_account_overview import (
    GetAccountOverviewUseCase,
)
from src.application.use_cases.get_current_rate import GetCurrentRateUseCase
from src.application.use_cases.list_transactions import ListTransactionsUseCase
from src.application.use_cases.open_account import OpenAccountUseCase
from src.application.use_cases.settle_return import SettleReturnUseCase
from src.domain.services.validation import ValidationRules
from src.infrastructure.db import SqlAlchemyDatabaseEngineAdapter
from src.infrastructure.identity import EnvIdentityProvider
from src.infrastructure.ledger_repository import SqlAlchemyLedgerRepository
from src.infrastructure.logging.logger import get_app_logger
from src.infrastructure.rate_providers import FixedRateProvider, HttpRateProvider
from src.infrastructure.rest_ledger_repository import RestLedgerRepository
from src.infrastructure.settings import LedgerSettings


def build_database_adapter() -> DatabaseEnginePort:
    """Return the database adapter instance."""
    return SqlAlchemyDatabaseEngineAdapter()


def build_ledger_repository(
    settings: LedgerSettings | None = None,
    db_port: DatabaseEnginePort | None = None,
) -> LedgerRepositoryPort:
    """Return the configured ledger repository."""
    resolved = settings or LedgerSettings.from_env()
    if resolved.backend == "sqlalchemy":
        return SqlAlchemyLedgerRepository(db_port or build_database_adapter())
    if resolved.backend == "rest":
        if not resolved.rest_url or not resolved.rest_api_key:
            raise RuntimeError(
                "REST backend requires LEDGER_REST_URL and LEDGER_REST_API_KEY."
            )
        return RestLedgerRepository(
            resolved.rest_url,
            resolved.rest_api_key,
            default_timeout=resolved.timeout_seconds,
            logger=get_app_logger(),
        )
    raise ValueError(
        f"Unsupported ledger backend: {resolved.backend}. "
        "Expected sqlalchemy or rest."
    )


def build_rate_provider(settings: LedgerSettings | None = None) -> RateProviderPort:
    """Return the configured market data adapter."""
    resolved = settings or LedgerSettings.from_env()
    if resolved.rate_provider == "fixed":
        return FixedRateProvider(resolved.fixed_rate, currency=resolved.currency)
    if resolved.rate_provider == "http":
        return HttpRateProvider(
            resolved.rate_api_url,
            resolved.rate_api_key,
            currency=resolved.currency,
            default_timeout=resolved.timeout_seconds,
            logger=get_app_logger(),
        )
    raise ValueError(
        f"Unsupported rate provider: {resolved.rate_provider}. "
        "Expected fixed or http."
    )


def build_identity_provider() -> IdentityProviderPort:
    """Return the identity provider for command-line sessions."""
    return EnvIdentityProvider()


def build_rate_use_case(
    settings: LedgerSettings | None = None,
    rate_provider: RateProviderPort | None = None,
) -> GetCurrentRateUseCase:
    """Return the current-rate use case."""
    resolved = settings or LedgerSettings.from_env()
    return GetCurrentRateUseCase(
        rate_provider or build_rate_provider(resolved),
        asset=resolved.asset,
        max_age=resolved.max_rate_age,
    )


def build_transfer_service(
    settings: LedgerSettings | None = None,
    repository: LedgerRepositoryPort | None = None,
    rate_provider: RateProviderPort | None = None,
) -> LedgerTransferService:
    """Return the ledger transfer service."""
    resolved = settings or LedgerSettings.from_env()
    return LedgerTransferService(
        repository or build_ledger_repository(resolved),
        rate_provider or build_rate_provider(resolved),
        rules=ValidationRules(min_purchase_usd=resolved.min_purchase_usd),
        asset=resolved.asset,
        max_rate_age=resolved.max_rate_age,
    )


def build_list_transactions_use_case(
    repository: LedgerRepositoryPort | None = None,
) -> ListTransactionsUseCase:
    """Return the transaction history use case."""
    return ListTransactionsUseCase(repository or build_ledger_repository())


def build_account_overview_use_case(
    settings: LedgerSettings | None = None,
    repository: LedgerRepositoryPort | None = None,
) -> GetAccountOverviewUseCase:
    """Return the dashboard overview use case."""
    resolved = settings or LedgerSettings.from_env()
    return GetAccountOverviewUseCase(
        repository or build_ledger_repository(resolved),
        build_rate_use_case(resolved),
    )


def build_open_account_use_case(
    repository: LedgerRepositoryPort | None = None,
) -> OpenAccountUseCase:
    """Return the account opening use case."""
    return OpenAccountUseCase(repository or build_ledger_repository())


def build_settle_return_use_case(
    repository: LedgerRepositoryPort | None = None,
) -> SettleReturnUseCase:
    """Return the return settlement use case."""
    return SettleReturnUseCase(repository or build_ledger_repository())


__all__ = [
    "build_database_adapter",
    "build_ledger_repository",
    "build_rate_provider",
    "build_identity_provider",
    "build_rate_use_case",
    "build_transfer_service",
    "build_list_transactions_use_case",
    "build_account_overview_use_case",
    "build_open_account_use_case",
    "build_settle_return_use_case",
]
