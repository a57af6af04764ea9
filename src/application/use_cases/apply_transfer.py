"""Ledger transfer service: purchase, send and return Aurum.

Each operation validates the intent, prices it, checks the balance and then
persists the transaction together with its balance effect. Adapters with
multi-row commits do this in one atomic write. Other adapters go through a
compensating protocol: the transaction is inserted as pending, the balance is
changed, and the transaction is then marked with its final status; a failure
in between marks the transaction failed and reverses whatever was applied.
"""

from datetime import datetime, timedelta
import time
from typing import Any, Callable, Mapping
import uuid

from src.application.ports.ledger_repository import LedgerRepositoryPort
from src.application.ports.rate_provider import RateProviderPort
from src.application.use_cases.get_current_rate import (
    DEFAULT_MAX_RATE_AGE,
    fetch_fresh_quote,
    utc_now,
)
from src.domain.constants import DEFAULT_ASSET
from src.domain.errors import (
    InsufficientBalance,
    LedgerError,
    NotFound,
    PersistenceFailure,
    RateUnavailable,
    ValidationError,
)
from src.domain.models.intents import PurchaseIntent, ReturnIntent, SendIntent
from src.domain.models.ledger import (
    LedgerEntry,
    PurchaseDetails,
    ReceiveDetails,
    ReturnDetails,
    SendDetails,
    Transaction,
    TransactionKind,
    TransactionStatus,
)
from src.domain.models.rates import RateQuote
from src.domain.services.conversion import aurum_to_usd, usd_to_aurum
from src.domain.services.validation import ValidationRules, validate_intent
from src.infrastructure.logging.logger import get_app_logger, get_usage_logger


def new_transaction_id() -> str:
    """Return a fresh transaction identifier."""
    return uuid.uuid4().hex


class Deadline:
    """Remaining time budget of one operation."""

    def __init__(
        self,
        timeout: float | None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._monotonic = monotonic
        self._expires_at = None if timeout is None else monotonic() + timeout

    def remaining(self) -> float | None:
        """Return seconds left, or None when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0


class LedgerTransferService:
    """Apply purchase, send and return operations to the ledger."""

    def __init__(
        self,
        repository: LedgerRepositoryPort,
        rate_provider: RateProviderPort,
        rules: ValidationRules | None = None,
        asset: str = DEFAULT_ASSET,
        max_rate_age: timedelta = DEFAULT_MAX_RATE_AGE,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
        id_factory: Callable[[], str] = new_transaction_id,
        logger=None,
        usage_logger=None,
    ) -> None:
        """Initialize the service.

        Args:
            repository: Ledger persistence port.
            rate_provider: Market data port.
            rules: Optional validation limits.
            asset: Asset code priced for purchases and returns.
            max_rate_age: Oldest rate quote accepted.
            clock: Clock returning aware UTC datetimes.
            monotonic: Monotonic clock used for deadlines.
            id_factory: Generator of transaction identifiers.
            logger: Optional logger compatible with logging.Logger-like API.
            usage_logger: Optional audit logger for completed operations.
        """
        self._repository = repository
        self._rate_provider = rate_provider
        self._rules = rules or ValidationRules()
        self._asset = asset
        self._max_rate_age = max_rate_age
        self._clock = clock
        self._monotonic = monotonic
        self._id_factory = id_factory
        self._logger = logger or get_app_logger()
        self._usage_logger = usage_logger or get_usage_logger()

    def apply_transfer(
        self,
        account_id: str,
        kind: TransactionKind | str,
        fields: Mapping[str, Any],
        timeout: float | None = None,
    ) -> Transaction:
        """Validate, price and persist one user operation.

        Args:
            account_id: Authenticated account performing the operation.
            kind: purchase, send or return.
            fields: Raw input fields of the operation.
            timeout: Optional deadline in seconds for the whole operation.

        Returns:
            Transaction: The persisted transaction, ``completed`` for
            purchase and send, ``pending`` for return.

        Raises:
            ValidationError: If the input is rejected.
            InsufficientBalance: If the balance does not cover the amount.
            RateUnavailable: If no fresh rate quote is available.
            NotFound: If the account does not exist.
            PersistenceFailure: If the backend fails; nothing is left
                half-applied unless ``reconciliation_required`` is set.
        """
        intent = validate_intent(kind, fields, self._rules)
        deadline = Deadline(timeout, self._monotonic)

        if isinstance(intent, PurchaseIntent):
            entry, linked = self._plan_purchase(account_id, intent, deadline)
        elif isinstance(intent, SendIntent):
            entry, linked = self._plan_send(account_id, intent, deadline)
        else:
            entry, linked = self._plan_return(account_id, intent, deadline)

        if self._repository.supports_atomic_writes:
            transaction = self._persist_atomically(entry, linked, deadline)
        else:
            transaction = self._persist_with_compensation(entry, linked, deadline)

        self._usage_logger.info(
            f"{transaction.kind.value} account={account_id} "
            f"amount={transaction.amount} status={transaction.status.value} "
            f"id={transaction.id}"
        )
        return transaction

    def _plan_purchase(
        self,
        account_id: str,
        intent: PurchaseIntent,
        deadline: Deadline,
    ) -> tuple[LedgerEntry, list[LedgerEntry]]:
        quote = self._fetch_quote(deadline)
        amount = usd_to_aurum(intent.usd_amount, quote.price)
        if amount <= 0:
            raise ValidationError(
                "usd_amount",
                "Amount is too small to buy any Aurum",
            )
        if amount > self._rules.max_transfer_aurum:
            raise ValidationError("usd_amount", "Amount is too large")
        if not self._repository.account_exists(
            account_id,
            timeout=self._read_timeout(deadline),
        ):
            raise NotFound(f"Account not found: {account_id}")
        transaction = self._new_transaction(
            account_id,
            amount,
            TransactionStatus.COMPLETED,
            PurchaseDetails(usd_amount=intent.usd_amount, rate=quote.price),
        )
        return LedgerEntry(transaction, amount), []

    def _plan_send(
        self,
        account_id: str,
        intent: SendIntent,
        deadline: Deadline,
    ) -> tuple[LedgerEntry, list[LedgerEntry]]:
        self._check_balance(account_id, intent.amount, deadline)
        recipient_id = self._repository.find_account_id_by_email(
            intent.recipient_email,
            timeout=self._read_timeout(deadline),
        )
        if recipient_id is None:
            raise ValidationError("recipient_email", "Recipient not found")
        if recipient_id == account_id:
            raise ValidationError(
                "recipient_email",
                "Cannot send Aurum to yourself",
            )
        sent = self._new_transaction(
            account_id,
            intent.amount,
            TransactionStatus.COMPLETED,
            SendDetails(
                recipient_email=intent.recipient_email,
                recipient_account_id=recipient_id,
            ),
            notes=intent.notes,
        )
        received = self._new_transaction(
            recipient_id,
            intent.amount,
            TransactionStatus.COMPLETED,
            ReceiveDetails(sender_account_id=account_id),
            notes=intent.notes,
            created_at=sent.created_at,
        )
        return (
            LedgerEntry(sent, -intent.amount),
            [LedgerEntry(received, intent.amount)],
        )

    def _plan_return(
        self,
        account_id: str,
        intent: ReturnIntent,
        deadline: Deadline,
    ) -> tuple[LedgerEntry, list[LedgerEntry]]:
        self._check_balance(account_id, intent.amount, deadline)
        quote = self._fetch_quote(deadline)
        transaction = self._new_transaction(
            account_id,
            intent.amount,
            TransactionStatus.PENDING,
            ReturnDetails(
                bank_account=intent.bank_account,
                usd_amount=aurum_to_usd(intent.amount, quote.price),
                rate=quote.price,
            ),
            notes=intent.notes,
        )
        return LedgerEntry(transaction, -intent.amount), []

    def _fetch_quote(self, deadline: Deadline) -> RateQuote:
        if deadline.expired():
            raise RateUnavailable("Timed out before a rate quote was obtained")
        return fetch_fresh_quote(
            self._rate_provider,
            self._asset,
            self._max_rate_age,
            now=self._clock,
            timeout=deadline.remaining(),
        )

    def _check_balance(self, account_id: str, amount, deadline: Deadline) -> None:
        """Reject amounts above the current balance.

        This read is advisory; the persistence write re-checks the balance
        under serialization.
        """
        snapshot = self._repository.read_balance(
            account_id,
            timeout=self._read_timeout(deadline),
        )
        if snapshot.balance < amount:
            raise InsufficientBalance(
                account_id,
                requested=amount,
                available=snapshot.balance,
            )

    @staticmethod
    def _read_timeout(deadline: Deadline) -> float | None:
        if deadline.expired():
            raise PersistenceFailure("Timed out before the ledger was read")
        return deadline.remaining()

    @staticmethod
    def _write_timeout(deadline: Deadline) -> float | None:
        if deadline.expired():
            raise PersistenceFailure("Timed out before the transfer was persisted")
        return deadline.remaining()

    def _new_transaction(
        self,
        account_id: str,
        amount,
        status: TransactionStatus,
        details,
        notes: str | None = None,
        created_at: datetime | None = None,
    ) -> Transaction:
        return Transaction(
            id=self._id_factory(),
            account_id=account_id,
            amount=amount,
            status=status,
            created_at=created_at or self._clock(),
            details=details,
            notes=notes,
        )

    def _persist_atomically(
        self,
        entry: LedgerEntry,
        linked: list[LedgerEntry],
        deadline: Deadline,
    ) -> Transaction:
        transaction = entry.transaction
        try:
            return self._repository.write_transfer_atomically(
                transaction,
                entry.balance_delta,
                linked,
                timeout=self._write_timeout(deadline),
            )
        except PersistenceFailure as exc:
            self._logger.error(
                f"Atomic write of {transaction.kind.value} {transaction.id} "
                f"for {transaction.account_id} failed: {exc!r} "
                f"(cause: {exc.__cause__!r})"
            )
            raise

    def _persist_with_compensation(
        self,
        entry: LedgerEntry,
        linked: list[LedgerEntry],
        deadline: Deadline,
    ) -> Transaction:
        """Persist through insert-pending, apply, finalize.

        Raises:
            InsufficientBalance: If the balance changed under us.
            ValidationError: If a balance would leave the storage range.
            PersistenceFailure: If any step failed; compensation has run.
        """
        entries = [entry, *linked]
        appended: list[Transaction] = []
        applied: list[LedgerEntry] = []
        try:
            for item in entries:
                pending = item.transaction.with_status(TransactionStatus.PENDING)
                self._repository.append_transaction(
                    pending,
                    timeout=self._write_timeout(deadline),
                )
                appended.append(pending)
                self._repository.apply_balance_delta(
                    pending.account_id,
                    item.balance_delta,
                    timeout=self._write_timeout(deadline),
                )
                applied.append(item)
        except LedgerError as exc:
            self._logger.error(
                f"Transfer {entry.transaction.id} failed after "
                f"{len(appended)} insert(s) and {len(applied)} balance "
                f"change(s): {exc!r}"
            )
            self._compensate(appended, applied, exc)
            raise

        for item in entries:
            final_status = item.transaction.status
            if final_status is TransactionStatus.PENDING:
                continue
            try:
                self._repository.update_transaction_status(
                    item.transaction.id,
                    final_status,
                    expected_status=TransactionStatus.PENDING,
                )
            except PersistenceFailure as exc:
                self._logger.critical(
                    f"Transaction {item.transaction.id} applied to the balance "
                    f"but left pending; manual reconciliation required"
                )
                self._flag_for_reconciliation(item.transaction)
                raise PersistenceFailure(
                    f"Could not finalize transaction {item.transaction.id}",
                    reconciliation_required=True,
                ) from exc
        return entry.transaction

    def _compensate(
        self,
        appended: list[Transaction],
        applied: list[LedgerEntry],
        cause: LedgerError,
    ) -> None:
        """Reverse applied deltas and mark inserted transactions failed.

        Raises:
            PersistenceFailure: With ``reconciliation_required`` when any
                compensating step fails.
        """
        reconciliation_required = False
        for item in reversed(applied):
            try:
                self._repository.apply_balance_delta(
                    item.transaction.account_id,
                    -item.balance_delta,
                )
            except LedgerError as exc:
                reconciliation_required = True
                self._logger.critical(
                    f"Could not reverse {item.balance_delta} on "
                    f"{item.transaction.account_id} for {item.transaction.id}: "
                    f"{exc!r}"
                )
        for transaction in appended:
            try:
                self._repository.update_transaction_status(
                    transaction.id,
                    TransactionStatus.FAILED,
                    needs_reconciliation=reconciliation_required,
                )
            except LedgerError as exc:
                reconciliation_required = True
                self._logger.critical(
                    f"Could not mark transaction {transaction.id} failed: {exc!r}"
                )
        if reconciliation_required:
            raise PersistenceFailure(
                f"Compensation incomplete after: {cause}",
                reconciliation_required=True,
            ) from cause

    def _flag_for_reconciliation(self, transaction: Transaction) -> None:
        try:
            self._repository.update_transaction_status(
                transaction.id,
                TransactionStatus.PENDING,
                needs_reconciliation=True,
            )
        except LedgerError as exc:
            self._logger.critical(
                f"Could not flag transaction {transaction.id}: {exc!r}"
            )


__all__ = ["LedgerTransferService", "Deadline", "new_transaction_id"]
