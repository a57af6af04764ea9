"""Use case to read an account's transaction history."""

from datetime import datetime

from src.application.ports.ledger_repository import LedgerRepositoryPort
from src.domain.constants import DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT
from src.domain.errors import NotFound, ValidationError
from src.domain.models.ledger import Transaction, TransactionFilter


class ListTransactionsUseCase:
    """Return transactions of an account, newest first."""

    def __init__(self, repository: LedgerRepositoryPort) -> None:
        """Initialize the use case with its required dependencies."""
        self._repository = repository

    def execute(
        self,
        account_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
        offset: int = 0,
        since: datetime | None = None,
        timeout: float | None = None,
    ) -> list[Transaction]:
        """Return a page of the account's transactions.

        Args:
            account_id: Owner of the transactions.
            limit: Page size between 1 and 500.
            offset: Number of newer transactions to skip.
            since: Optional lower bound on ``created_at``.
            timeout: Optional bound on each backend call, in seconds.

        Returns:
            list[Transaction]: Transactions ordered newest first.

        Raises:
            ValidationError: If ``limit`` or ``offset`` is out of range.
            NotFound: If the account does not exist.
        """
        if not 1 <= limit <= MAX_HISTORY_LIMIT:
            raise ValidationError(
                "limit",
                f"Limit must be between 1 and {MAX_HISTORY_LIMIT}",
            )
        if offset < 0:
            raise ValidationError("offset", "Offset cannot be negative")
        if not self._repository.account_exists(account_id, timeout=timeout):
            raise NotFound(f"Account not found: {account_id}")
        return self._repository.list_transactions(
            account_id,
            TransactionFilter(limit=limit, offset=offset, since=since),
            timeout=timeout,
        )


__all__ = ["ListTransactionsUseCase"]
