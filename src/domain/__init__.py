"""Domain package for ledger rules and core models."""

from .constants import (
    AURUM_QUANTUM,
    DEFAULT_ASSET,
    DEFAULT_CURRENCY,
    MIN_PURCHASE_USD,
    USD_QUANTUM,
)
from .errors import (
    InsufficientBalance,
    LedgerError,
    NotFound,
    PersistenceFailure,
    RateUnavailable,
    ValidationError,
)
from .models import (
    BalanceSnapshot,
    RateQuote,
    Transaction,
    TransactionKind,
    TransactionStatus,
)
from .services import (
    ValidationRules,
    aurum_to_usd,
    usd_to_aurum,
    validate_intent,
    validate_quote,
)

__all__ = [
    "AURUM_QUANTUM",
    "DEFAULT_ASSET",
    "DEFAULT_CURRENCY",
    "MIN_PURCHASE_USD",
    "USD_QUANTUM",
    "InsufficientBalance",
    "LedgerError",
    "NotFound",
    "PersistenceFailure",
    "RateUnavailable",
    "ValidationError",
    "BalanceSnapshot",
    "RateQuote",
    "Transaction",
    "TransactionKind",
    "TransactionStatus",
    "ValidationRules",
    "aurum_to_usd",
    "usd_to_aurum",
    "validate_intent",
    "validate_quote",
]
