"""Conversion between ledger domain models and flat storage rows.

Both ledger adapters store a transaction as one flat row: the kind-specific
details are spread over ``counterpart``, ``counterpart_account_id``,
``usd_amount`` and ``rate_price``. Amounts are integer units of 0.0001 Aurum
and timestamps are fixed-width ISO-8601 strings in UTC so that text ordering
matches time ordering.
"""

from datetime import datetime, timezone
from typing import Any

from src.domain.constants import USD_QUANTUM
from src.domain.models.ledger import (
    PurchaseDetails,
    ReceiveDetails,
    ReturnDetails,
    SendDetails,
    Transaction,
    TransactionKind,
    TransactionStatus,
)
from src.utils.decimal_utils import (
    amount_to_units,
    coerce_decimal,
    from_units,
    quantize_decimal,
)

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"


def format_timestamp(value: datetime) -> str:
    """Render a datetime as a sortable UTC string."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def parse_timestamp(value) -> datetime:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def transaction_to_row(transaction: Transaction) -> dict[str, Any]:
    """Flatten a transaction into column values.

    Args:
        transaction: Domain transaction to store.

    Returns:
        dict[str, Any]: Column values keyed by column name.
    """
    details = transaction.details
    counterpart = None
    counterpart_account_id = None
    usd_amount = None
    rate_price = None
    if isinstance(details, PurchaseDetails):
        usd_amount = str(details.usd_amount)
        rate_price = str(details.rate)
    elif isinstance(details, SendDetails):
        counterpart = details.recipient_email
        counterpart_account_id = details.recipient_account_id
    elif isinstance(details, ReceiveDetails):
        counterpart_account_id = details.sender_account_id
    elif isinstance(details, ReturnDetails):
        counterpart = details.bank_account
        usd_amount = str(details.usd_amount)
        rate_price = str(details.rate)
    return {
        "id": transaction.id,
        "account_id": transaction.account_id,
        "kind": transaction.kind.value,
        "amount_units": amount_to_units(transaction.amount),
        "status": transaction.status.value,
        "counterpart": counterpart,
        "counterpart_account_id": counterpart_account_id,
        "usd_amount": usd_amount,
        "rate_price": rate_price,
        "notes": transaction.notes,
        "needs_reconciliation": transaction.needs_reconciliation,
        "created_at": format_timestamp(transaction.created_at),
    }


def row_to_transaction(row) -> Transaction:
    """Rebuild a transaction from a mapping of column values.

    Args:
        row: Mapping-like row (SQLAlchemy ``RowMapping`` or JSON object).

    Returns:
        Transaction: Domain transaction with typed details.

    Raises:
        ValueError: If the stored kind is unknown.
    """
    kind = TransactionKind(row["kind"])
    if kind is TransactionKind.PURCHASE:
        details = PurchaseDetails(
            usd_amount=quantize_decimal(row["usd_amount"], USD_QUANTUM),
            rate=coerce_decimal(row["rate_price"]),
        )
    elif kind is TransactionKind.SEND:
        details = SendDetails(
            recipient_email=row["counterpart"],
            recipient_account_id=row["counterpart_account_id"],
        )
    elif kind is TransactionKind.RECEIVE:
        details = ReceiveDetails(
            sender_account_id=row["counterpart_account_id"],
        )
    else:
        details = ReturnDetails(
            bank_account=row["counterpart"],
            usd_amount=quantize_decimal(row["usd_amount"], USD_QUANTUM),
            rate=coerce_decimal(row["rate_price"]),
        )
    return Transaction(
        id=row["id"],
        account_id=row["account_id"],
        amount=from_units(row["amount_units"]),
        status=TransactionStatus(row["status"]),
        created_at=parse_timestamp(row["created_at"]),
        details=details,
        notes=row["notes"],
        needs_reconciliation=bool(row["needs_reconciliation"]),
    )


__all__ = [
    "format_timestamp",
    "parse_timestamp",
    "transaction_to_row",
    "row_to_transaction",
]
