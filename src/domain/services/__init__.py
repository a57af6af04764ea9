"""Domain services package."""

from .conversion import aurum_to_usd, usd_to_aurum
from .validation import (
    ValidationRules,
    normalize_email,
    parse_amount,
    validate_intent,
    validate_quote,
)

__all__ = [
    "aurum_to_usd",
    "usd_to_aurum",
    "ValidationRules",
    "normalize_email",
    "parse_amount",
    "validate_intent",
    "validate_quote",
]
