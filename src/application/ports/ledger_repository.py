"""Application port for ledger persistence."""

from collections.abc import Sequence
from decimal import Decimal
from typing import Protocol

from src.domain.models.ledger import (
    BalanceSnapshot,
    LedgerEntry,
    Transaction,
    TransactionFilter,
    TransactionStatus,
)


class LedgerRepositoryPort(Protocol):
    """Port exposing balances and transactions of the ledger.

    Adapters that can commit several rows as one unit set
    ``supports_atomic_writes`` and implement the ``write_*_atomically``
    methods. Other adapters only need the single-row primitives; callers then
    fall back to a compensating protocol built from them.

    All methods accept an optional ``timeout`` in seconds and raise
    ``PersistenceFailure`` for backend errors.
    """

    supports_atomic_writes: bool

    def account_exists(self, account_id: str, timeout: float | None = None) -> bool:
        """Return True when the account is registered."""

    def find_account_id_by_email(
        self,
        email: str,
        timeout: float | None = None,
    ) -> str | None:
        """Return the account id registered with ``email``, if any."""

    def open_account(
        self,
        account_id: str,
        email: str,
        timeout: float | None = None,
    ) -> BalanceSnapshot:
        """Create an account with a zero balance."""

    def read_balance(
        self,
        account_id: str,
        timeout: float | None = None,
    ) -> BalanceSnapshot:
        """Return the current balance; raise NotFound for unknown accounts."""

    def write_transfer_atomically(
        self,
        transaction: Transaction,
        balance_delta: Decimal,
        linked_entries: Sequence[LedgerEntry] = (),
        timeout: float | None = None,
    ) -> Transaction:
        """Insert transactions and apply their balance deltas as one unit.

        Raises:
            InsufficientBalance: If any delta would make a balance negative.
        """

    def write_settlement_atomically(
        self,
        transaction: Transaction,
        status: TransactionStatus,
        balance_delta: Decimal,
        timeout: float | None = None,
    ) -> Transaction:
        """Change a pending transaction's status and apply a delta as one unit."""

    def append_transaction(
        self,
        transaction: Transaction,
        timeout: float | None = None,
    ) -> Transaction:
        """Insert a single transaction row."""

    def apply_balance_delta(
        self,
        account_id: str,
        balance_delta: Decimal,
        timeout: float | None = None,
    ) -> BalanceSnapshot:
        """Apply a delta to one balance without ever going below zero.

        Raises:
            InsufficientBalance: If the delta would make the balance negative.
        """

    def update_transaction_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        expected_status: TransactionStatus | None = None,
        needs_reconciliation: bool | None = None,
        timeout: float | None = None,
    ) -> bool:
        """Change a transaction status; return False when no row matched."""

    def get_transaction(
        self,
        transaction_id: str,
        timeout: float | None = None,
    ) -> Transaction:
        """Return one transaction; raise NotFound when missing."""

    def list_transactions(
        self,
        account_id: str,
        transaction_filter: TransactionFilter,
        timeout: float | None = None,
    ) -> list[Transaction]:
        """Return the account's transactions, newest first."""


__all__ = ["LedgerRepositoryPort"]
