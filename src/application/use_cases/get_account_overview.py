"""Use case to compute the dashboard overview of an account."""

from src.application.ports.ledger_repository import LedgerRepositoryPort
from src.application.use_cases.get_current_rate import GetCurrentRateUseCase
from src.domain.constants import RECENT_TRANSACTIONS_LIMIT
from src.domain.errors import RateUnavailable
from src.domain.models.ledger import AccountOverview, TransactionFilter
from src.domain.services.conversion import aurum_to_usd
from src.infrastructure.logging.logger import get_app_logger


class GetAccountOverviewUseCase:
    """Combine balance, current value and recent activity."""

    def __init__(
        self,
        repository: LedgerRepositoryPort,
        rate_use_case: GetCurrentRateUseCase,
        logger=None,
    ) -> None:
        """Initialize the use case.

        Args:
            repository: Ledger persistence port.
            rate_use_case: Source of fresh rate quotes.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._repository = repository
        self._rate_use_case = rate_use_case
        self._logger = logger or get_app_logger()

    def execute(
        self,
        account_id: str,
        recent_limit: int = RECENT_TRANSACTIONS_LIMIT,
    ) -> AccountOverview:
        """Return the overview for ``account_id``.

        A missing or stale rate does not fail the overview; the quote and the
        currency value are then None.

        Raises:
            NotFound: If the account does not exist.
        """
        snapshot = self._repository.read_balance(account_id)
        try:
            quote = self._rate_use_case.execute()
        except RateUnavailable as exc:
            self._logger.warning(f"Overview without rate for {account_id}: {exc}")
            quote = None
        recent = self._repository.list_transactions(
            account_id,
            TransactionFilter(limit=recent_limit),
        )
        return AccountOverview(
            account_id=account_id,
            balance=snapshot.balance,
            quote=quote,
            value_usd=(
                aurum_to_usd(snapshot.balance, quote.price)
                if quote is not None
                else None
            ),
            recent_transactions=recent,
        )


__all__ = ["GetAccountOverviewUseCase"]
