"""Validated user intents accepted by the transfer service."""

from dataclasses import dataclass
from decimal import Decimal

from src.domain.models.ledger import TransactionKind


@dataclass(frozen=True)
class PurchaseIntent:
    """Buy Aurum for a currency amount."""

    usd_amount: Decimal

    kind = TransactionKind.PURCHASE


@dataclass(frozen=True)
class SendIntent:
    """Send Aurum to another account identified by email."""

    recipient_email: str
    amount: Decimal
    notes: str | None = None

    kind = TransactionKind.SEND


@dataclass(frozen=True)
class ReturnIntent:
    """Return Aurum for cash paid to a bank account."""

    amount: Decimal
    bank_account: str
    notes: str | None = None

    kind = TransactionKind.RETURN


TransferIntent = PurchaseIntent | SendIntent | ReturnIntent


__all__ = ["PurchaseIntent", "SendIntent", "ReturnIntent", "TransferIntent"]
