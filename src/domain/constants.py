"""Domain constants for the Aurum ledger."""

from decimal import Decimal

AURUM_QUANTUM = Decimal("0.0001")
USD_QUANTUM = Decimal("0.01")

# Balances and amounts are persisted as integer counts of AURUM_QUANTUM.
UNITS_PER_AURUM = 10_000
# Storage columns are 64-bit signed integers.
MAX_BALANCE_UNITS = 2**63 - 1

DEFAULT_ASSET = "XAU"
DEFAULT_CURRENCY = "USD"
DEFAULT_GOLD_RATE = Decimal("1850.25")

MIN_PURCHASE_USD = Decimal("10.00")
MAX_TRANSFER_AURUM = Decimal("1000000.0000")
MAX_NOTES_LENGTH = 500
MAX_QUOTE_CLOCK_SKEW_SECONDS = 5
MIN_BANK_ACCOUNT_LENGTH = 5

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 500
RECENT_TRANSACTIONS_LIMIT = 5


__all__ = [
    "AURUM_QUANTUM",
    "USD_QUANTUM",
    "UNITS_PER_AURUM",
    "MAX_BALANCE_UNITS",
    "DEFAULT_ASSET",
    "DEFAULT_CURRENCY",
    "DEFAULT_GOLD_RATE",
    "MIN_PURCHASE_USD",
    "MAX_TRANSFER_AURUM",
    "MAX_NOTES_LENGTH",
    "MAX_QUOTE_CLOCK_SKEW_SECONDS",
    "MIN_BANK_ACCOUNT_LENGTH",
    "DEFAULT_HISTORY_LIMIT",
    "MAX_HISTORY_LIMIT",
    "RECENT_TRANSACTIONS_LIMIT",
]
