"""Domain models for balances and ledger transactions."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from src.domain.models.rates import RateQuote


class TransactionKind(str, Enum):
    """Kinds of ledger transactions."""

    PURCHASE = "purchase"
    SEND = "send"
    RECEIVE = "receive"
    RETURN = "return"


class TransactionStatus(str, Enum):
    """Lifecycle states of a ledger transaction."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class PurchaseDetails:
    """Aurum bought with currency at a rate snapshot."""

    usd_amount: Decimal
    rate: Decimal

    kind = TransactionKind.PURCHASE


@dataclass(frozen=True)
class SendDetails:
    """Aurum sent to another registered account."""

    recipient_email: str
    recipient_account_id: str

    kind = TransactionKind.SEND


@dataclass(frozen=True)
class ReceiveDetails:
    """Aurum credited from another account's send."""

    sender_account_id: str

    kind = TransactionKind.RECEIVE


@dataclass(frozen=True)
class ReturnDetails:
    """Aurum returned for cash paid out to a bank account."""

    bank_account: str
    usd_amount: Decimal
    rate: Decimal

    kind = TransactionKind.RETURN


TransactionDetails = PurchaseDetails | SendDetails | ReceiveDetails | ReturnDetails


@dataclass(frozen=True)
class Transaction:
    """Immutable ledger transaction.

    The transaction kind is carried by the type of ``details``; only the
    status and the reconciliation flag change after creation.

    Attributes:
        id: Unique transaction identifier.
        account_id: Account that owns the transaction.
        amount: Positive Aurum amount at 4-decimal precision.
        status: Current lifecycle status.
        created_at: Creation timestamp in UTC.
        details: Kind-specific payload.
        notes: Optional free-text notes.
        needs_reconciliation: Set when a compensating action failed.
    """

    id: str
    account_id: str
    amount: Decimal
    status: TransactionStatus
    created_at: datetime
    details: TransactionDetails
    notes: str | None = None
    needs_reconciliation: bool = False

    @property
    def kind(self) -> TransactionKind:
        """Return the kind implied by the details payload."""
        return self.details.kind

    @property
    def counterpart(self) -> str | None:
        """Return a display identifier for the other side, if any."""
        details = self.details
        if isinstance(details, SendDetails):
            return details.recipient_email
        if isinstance(details, ReceiveDetails):
            return details.sender_account_id
        if isinstance(details, ReturnDetails):
            return details.bank_account
        return None

    @property
    def usd_amount(self) -> Decimal | None:
        """Return the currency amount snapshot for purchases and returns."""
        return getattr(self.details, "usd_amount", None)

    @property
    def rate(self) -> Decimal | None:
        """Return the rate snapshot for purchases and returns."""
        return getattr(self.details, "rate", None)

    def with_status(
        self,
        status: TransactionStatus,
        needs_reconciliation: bool | None = None,
    ) -> "Transaction":
        """Return a copy carrying a new status."""
        flagged = (
            self.needs_reconciliation
            if needs_reconciliation is None
            else needs_reconciliation
        )
        return replace(self, status=status, needs_reconciliation=flagged)


@dataclass(frozen=True)
class BalanceSnapshot:
    """Balance of an account as read at one point in time."""

    account_id: str
    balance: Decimal
    version: int


@dataclass(frozen=True)
class LedgerEntry:
    """A transaction paired with the balance change it causes."""

    transaction: Transaction
    balance_delta: Decimal


@dataclass(frozen=True)
class TransactionFilter:
    """Paging and time filter for history reads."""

    limit: int = 50
    offset: int = 0
    since: datetime | None = None


@dataclass(frozen=True)
class AccountOverview:
    """Dashboard projection of an account."""

    account_id: str
    balance: Decimal
    quote: RateQuote | None
    value_usd: Decimal | None
    recent_transactions: list[Transaction] = field(default_factory=list)


__all__ = [
    "TransactionKind",
    "TransactionStatus",
    "PurchaseDetails",
    "SendDetails",
    "ReceiveDetails",
    "ReturnDetails",
    "TransactionDetails",
    "Transaction",
    "BalanceSnapshot",
    "LedgerEntry",
    "TransactionFilter",
    "AccountOverview",
]
