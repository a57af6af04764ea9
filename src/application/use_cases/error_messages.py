"""User-facing messages for ledger errors."""

from src.domain.errors import (
    InsufficientBalance,
    NotFound,
    RateUnavailable,
    ValidationError,
)

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."
INSUFFICIENT_BALANCE_MESSAGE = "You don't have enough Aurum for this operation."
RATE_UNAVAILABLE_MESSAGE = "The gold rate is currently unavailable. Please try again."
NOT_FOUND_MESSAGE = "The requested account or transaction was not found."


def user_message(exc: BaseException) -> str:
    """Return the message to show for ``exc``.

    Validation and balance errors are user-correctable and shown as is;
    infrastructure errors collapse to a generic retry message.
    """
    if isinstance(exc, ValidationError):
        return exc.message
    if isinstance(exc, InsufficientBalance):
        return INSUFFICIENT_BALANCE_MESSAGE
    if isinstance(exc, RateUnavailable):
        return RATE_UNAVAILABLE_MESSAGE
    if isinstance(exc, NotFound):
        return NOT_FOUND_MESSAGE
    return GENERIC_ERROR_MESSAGE


__all__ = [
    "user_message",
    "GENERIC_ERROR_MESSAGE",
    "INSUFFICIENT_BALANCE_MESSAGE",
    "RATE_UNAVAILABLE_MESSAGE",
    "NOT_FOUND_MESSAGE",
]
