"""Domain models package."""

from .intents import PurchaseIntent, ReturnIntent, SendIntent, TransferIntent
from .ledger import (
    AccountOverview,
    BalanceSnapshot,
    LedgerEntry,
    PurchaseDetails,
    ReceiveDetails,
    ReturnDetails,
    SendDetails,
    Transaction,
    TransactionDetails,
    TransactionFilter,
    TransactionKind,
    TransactionStatus,
)
from .rates import RateQuote

__all__ = [
    "AccountOverview",
    "BalanceSnapshot",
    "LedgerEntry",
    "PurchaseDetails",
    "ReceiveDetails",
    "ReturnDetails",
    "SendDetails",
    "Transaction",
    "TransactionDetails",
    "TransactionFilter",
    "TransactionKind",
    "TransactionStatus",
    "RateQuote",
    "PurchaseIntent",
    "SendIntent",
    "ReturnIntent",
    "TransferIntent",
]
