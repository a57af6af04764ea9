"""Validation rules for transfer intents and rate quotes.

Every function here is pure: it inspects raw input and static rules and either
returns a typed value or raises a field-tagged ``ValidationError``.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
import re
from typing import Any

from src.domain.constants import (
    MAX_NOTES_LENGTH,
    MAX_QUOTE_CLOCK_SKEW_SECONDS,
    MAX_TRANSFER_AURUM,
    MIN_BANK_ACCOUNT_LENGTH,
    MIN_PURCHASE_USD,
)
from src.domain.errors import RateUnavailable, ValidationError
from src.domain.models.intents import (
    PurchaseIntent,
    ReturnIntent,
    SendIntent,
    TransferIntent,
)
from src.domain.models.ledger import TransactionKind
from src.domain.models.rates import RateQuote

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class ValidationRules:
    """Static business limits applied by the validator."""

    min_purchase_usd: Decimal = MIN_PURCHASE_USD
    max_transfer_aurum: Decimal = MAX_TRANSFER_AURUM
    max_notes_length: int = MAX_NOTES_LENGTH
    min_bank_account_length: int = MIN_BANK_ACCOUNT_LENGTH


def parse_amount(
    field: str,
    raw: Any,
    max_places: int,
    max_value: Decimal | None = None,
) -> Decimal:
    """Parse a strictly positive decimal amount.

    Args:
        field: Input field name used in error messages.
        raw: Raw value (Decimal, int, float or numeric string).
        max_places: Maximum number of decimal places accepted.
        max_value: Optional inclusive upper bound.

    Returns:
        Decimal: Parsed amount.

    Raises:
        ValidationError: If the value is missing, not a finite number, not
            positive, too large or too precise.
    """
    if raw is None or isinstance(raw, bool):
        raise ValidationError(field, "Amount is required")
    try:
        value = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except InvalidOperation:
        raise ValidationError(field, "Amount must be a number") from None
    if not value.is_finite():
        raise ValidationError(field, "Amount must be a number")
    if value <= 0:
        raise ValidationError(field, "Amount must be greater than 0")
    if max_value is not None and value > max_value:
        raise ValidationError(field, "Amount is too large")
    try:
        rounded = value.quantize(Decimal(1).scaleb(-max_places))
    except InvalidOperation:
        raise ValidationError(field, "Amount is too large") from None
    if rounded != value:
        raise ValidationError(
            field,
            f"Amount supports at most {max_places} decimal places",
        )
    return value


def normalize_email(field: str, raw: Any) -> str:
    """Return a stripped, lower-cased email or raise ValidationError."""
    email = raw.strip().lower() if isinstance(raw, str) else ""
    if not _EMAIL_PATTERN.match(email):
        raise ValidationError(field, "Invalid email address")
    return email


def _parse_notes(raw: Any, rules: ValidationRules) -> str | None:
    if raw is None:
        return None
    notes = str(raw).strip()
    if len(notes) > rules.max_notes_length:
        raise ValidationError(
            "notes",
            f"Notes must be less than {rules.max_notes_length} characters",
        )
    return notes or None


def validate_purchase(
    fields: Mapping[str, Any],
    rules: ValidationRules,
) -> PurchaseIntent:
    usd_amount = parse_amount("usd_amount", fields.get("usd_amount"), 2)
    if usd_amount < rules.min_purchase_usd:
        raise ValidationError(
            "usd_amount",
            f"Minimum purchase is ${rules.min_purchase_usd:.2f}",
        )
    return PurchaseIntent(usd_amount=usd_amount)


def validate_send(
    fields: Mapping[str, Any],
    rules: ValidationRules,
) -> SendIntent:
    recipient = normalize_email("recipient_email", fields.get("recipient_email"))
    amount = parse_amount(
        "amount",
        fields.get("amount"),
        4,
        max_value=rules.max_transfer_aurum,
    )
    return SendIntent(
        recipient_email=recipient,
        amount=amount,
        notes=_parse_notes(fields.get("notes"), rules),
    )


def validate_return(
    fields: Mapping[str, Any],
    rules: ValidationRules,
) -> ReturnIntent:
    amount = parse_amount(
        "amount",
        fields.get("amount"),
        4,
        max_value=rules.max_transfer_aurum,
    )
    raw_account = fields.get("bank_account")
    bank_account = raw_account.strip() if isinstance(raw_account, str) else ""
    if len(bank_account) < rules.min_bank_account_length:
        raise ValidationError("bank_account", "Invalid bank account")
    return ReturnIntent(
        amount=amount,
        bank_account=bank_account,
        notes=_parse_notes(fields.get("notes"), rules),
    )


_VALIDATORS = {
    TransactionKind.PURCHASE: validate_purchase,
    TransactionKind.SEND: validate_send,
    TransactionKind.RETURN: validate_return,
}


def validate_intent(
    kind: TransactionKind | str,
    fields: Mapping[str, Any],
    rules: ValidationRules | None = None,
) -> TransferIntent:
    """Validate raw input fields for a user-initiated operation.

    Args:
        kind: Operation kind (purchase, send or return).
        fields: Raw input fields keyed by name.
        rules: Optional business limits; defaults apply when omitted.

    Returns:
        TransferIntent: Normalized, typed intent.

    Raises:
        ValidationError: Naming the first offending field.
    """
    try:
        resolved_kind = TransactionKind(kind)
    except ValueError:
        raise ValidationError("kind", f"Unsupported operation: {kind}") from None
    validator = _VALIDATORS.get(resolved_kind)
    if validator is None:
        raise ValidationError(
            "kind",
            f"Operation cannot be requested directly: {resolved_kind.value}",
        )
    return validator(fields, rules or ValidationRules())


def validate_quote(
    quote: RateQuote,
    now: datetime,
    max_age: timedelta,
) -> RateQuote:
    """Reject quotes that are not finite and positive, stale, or future-dated.

    Raises:
        RateUnavailable: If the quote cannot be used for pricing.
    """
    if not isinstance(quote.price, Decimal) or not quote.price.is_finite():
        raise RateUnavailable(
            f"Rejected non-numeric {quote.asset}/{quote.currency} quote: "
            f"{quote.price}"
        )
    if quote.price <= 0:
        raise RateUnavailable(
            f"Rejected non-positive {quote.asset}/{quote.currency} quote: "
            f"{quote.price}"
        )
    age = quote.age(now)
    if -age > timedelta(seconds=MAX_QUOTE_CLOCK_SKEW_SECONDS):
        raise RateUnavailable(
            f"Rejected {quote.asset}/{quote.currency} quote dated "
            f"{-age.total_seconds():.0f}s in the future"
        )
    if age > max_age:
        raise RateUnavailable(
            f"Stale {quote.asset}/{quote.currency} quote: "
            f"{age.total_seconds():.0f}s old (limit {max_age.total_seconds():.0f}s)"
        )
    return quote


__all__ = [
    "ValidationRules",
    "parse_amount",
    "normalize_email",
    "validate_purchase",
    "validate_send",
    "validate_return",
    "validate_intent",
    "validate_quote",
]
