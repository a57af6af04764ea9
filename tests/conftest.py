"""Shared fixtures and in-memory fakes for ledger tests."""

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import itertools
from unittest.mock import MagicMock

import pytest

from src.application.use_cases.apply_transfer import LedgerTransferService
from src.domain.errors import InsufficientBalance, NotFound, ValidationError
from src.domain.models.ledger import (
    BalanceSnapshot,
    LedgerEntry,
    Transaction,
    TransactionFilter,
    TransactionStatus,
)
from src.infrastructure.rate_providers import FixedRateProvider

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class InMemoryLedgerRepository:
    """Dict-backed ledger repository with failure injection.

    ``failures`` maps a method name to a list of outcomes; each call of that
    method pops the next one and raises it unless it is None.
    """

    def __init__(self, atomic: bool = True) -> None:
        self.supports_atomic_writes = atomic
        self.emails: dict[str, str] = {}
        self.balances: dict[str, Decimal] = {}
        self.versions: dict[str, int] = {}
        self.transactions: dict[str, Transaction] = {}
        self.failures: dict[str, list[Exception]] = {}
        self.calls: list[str] = []

    def fail(self, method: str, *errors: Exception | None) -> None:
        self.failures.setdefault(method, []).extend(errors)

    def _record(self, method: str) -> None:
        self.calls.append(method)
        pending = self.failures.get(method)
        if pending:
            error = pending.pop(0)
            if error is not None:
                raise error

    def add_account(
        self,
        account_id: str,
        email: str,
        balance: str | Decimal = "0",
    ) -> None:
        self.emails[account_id] = email
        self.balances[account_id] = Decimal(balance)
        self.versions[account_id] = 0

    def account_exists(self, account_id, timeout=None):
        self._record("account_exists")
        return account_id in self.emails

    def find_account_id_by_email(self, email, timeout=None):
        self._record("find_account_id_by_email")
        for account_id, stored in self.emails.items():
            if stored == email:
                return account_id
        return None

    def open_account(self, account_id, email, timeout=None):
        self._record("open_account")
        self.add_account(account_id, email)
        return BalanceSnapshot(account_id, Decimal("0.0000"), 0)

    def read_balance(self, account_id, timeout=None):
        self._record("read_balance")
        if account_id not in self.balances:
            raise NotFound(f"Account not found: {account_id}")
        return BalanceSnapshot(
            account_id,
            self.balances[account_id],
            self.versions[account_id],
        )

    def _check_delta(self, account_id, delta):
        if account_id not in self.balances:
            raise NotFound(f"Account not found: {account_id}")
        if self.balances[account_id] + delta < 0:
            raise InsufficientBalance(
                account_id,
                requested=-delta,
                available=self.balances[account_id],
            )

    def _set_balance(self, account_id, delta):
        self.balances[account_id] += delta
        self.versions[account_id] += 1

    def write_transfer_atomically(
        self,
        transaction: Transaction,
        balance_delta: Decimal,
        linked_entries: Sequence[LedgerEntry] = (),
        timeout=None,
    ):
        self._record("write_transfer_atomically")
        entries = [LedgerEntry(transaction, balance_delta), *linked_entries]
        for entry in entries:
            self._check_delta(entry.transaction.account_id, entry.balance_delta)
        for entry in entries:
            self._set_balance(entry.transaction.account_id, entry.balance_delta)
            self.transactions[entry.transaction.id] = entry.transaction
        return transaction

    def write_settlement_atomically(self, transaction, status, balance_delta, timeout=None):
        self._record("write_settlement_atomically")
        stored = self.transactions[transaction.id]
        if stored.status is not TransactionStatus.PENDING:
            raise ValidationError("status", "Transaction is no longer pending")
        self._check_delta(transaction.account_id, balance_delta)
        self._set_balance(transaction.account_id, balance_delta)
        self.transactions[transaction.id] = stored.with_status(status)
        return self.transactions[transaction.id]

    def append_transaction(self, transaction, timeout=None):
        self._record("append_transaction")
        self.transactions[transaction.id] = transaction
        return transaction

    def apply_balance_delta(self, account_id, balance_delta, timeout=None):
        self._record("apply_balance_delta")
        self._check_delta(account_id, balance_delta)
        self._set_balance(account_id, balance_delta)
        return BalanceSnapshot(
            account_id,
            self.balances[account_id],
            self.versions[account_id],
        )

    def update_transaction_status(
        self,
        transaction_id,
        status,
        expected_status=None,
        needs_reconciliation=None,
        timeout=None,
    ):
        self._record("update_transaction_status")
        stored = self.transactions.get(transaction_id)
        if stored is None:
            return False
        if expected_status is not None and stored.status is not expected_status:
            return False
        self.transactions[transaction_id] = stored.with_status(
            status,
            needs_reconciliation=needs_reconciliation,
        )
        return True

    def get_transaction(self, transaction_id, timeout=None):
        self._record("get_transaction")
        if transaction_id not in self.transactions:
            raise NotFound(f"Transaction not found: {transaction_id}")
        return self.transactions[transaction_id]

    def list_transactions(
        self,
        account_id,
        transaction_filter: TransactionFilter,
        timeout=None,
    ):
        self._record("list_transactions")
        owned = [
            transaction
            for transaction in self.transactions.values()
            if transaction.account_id == account_id
            and (
                transaction_filter.since is None
                or transaction.created_at >= transaction_filter.since
            )
        ]
        owned.sort(key=lambda item: (item.created_at, item.id), reverse=True)
        start = transaction_filter.offset
        return owned[start:start + transaction_filter.limit]


class SteppingClock:
    """Clock advancing by a fixed step on every call."""

    def __init__(self, start: datetime = NOW, step: timedelta = timedelta(seconds=1)):
        self._current = start
        self._step = step

    def __call__(self) -> datetime:
        value = self._current
        self._current += self._step
        return value


@pytest.fixture
def repository() -> InMemoryLedgerRepository:
    repo = InMemoryLedgerRepository()
    repo.add_account("alice", "alice@example.com")
    repo.add_account("bob", "bob@example.com")
    return repo


@pytest.fixture
def compensating_repository() -> InMemoryLedgerRepository:
    repo = InMemoryLedgerRepository(atomic=False)
    repo.add_account("alice", "alice@example.com")
    repo.add_account("bob", "bob@example.com")
    return repo


@pytest.fixture
def fake_logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def make_service(fake_logger):
    """Factory building a transfer service over a given repository."""

    def _make(repo, rate_provider=None, clock=None, monotonic=None, rules=None):
        ids = (f"tx{index:03d}" for index in itertools.count(1))
        kwargs = {}
        if monotonic is not None:
            kwargs["monotonic"] = monotonic
        return LedgerTransferService(
            repo,
            rate_provider or FixedRateProvider(clock=lambda: NOW),
            rules=rules,
            clock=clock or SteppingClock(),
            id_factory=lambda: next(ids),
            logger=fake_logger,
            usage_logger=MagicMock(),
            **kwargs,
        )

    return _make
