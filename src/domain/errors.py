"""Error taxonomy for ledger operations."""


class LedgerError(Exception):
    """Base class for every error raised by the ledger core."""


class ValidationError(LedgerError):
    """Input rejected before any mutation.

    Attributes:
        field: Name of the offending input field.
        message: User-facing description of the problem.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class InsufficientBalance(LedgerError):
    """The account balance does not cover the requested amount."""

    def __init__(self, account_id: str, requested, available=None) -> None:
        detail = f"Insufficient balance for account {account_id}: requested {requested}"
        if available is not None:
            detail += f", available {available}"
        super().__init__(detail)
        self.account_id = account_id
        self.requested = requested
        self.available = available


class RateUnavailable(LedgerError):
    """No usable rate quote could be obtained; the caller may retry."""


class PersistenceFailure(LedgerError):
    """The persistence backend failed.

    Attributes:
        reconciliation_required: True when a compensating action also failed
            and the ledger needs manual reconciliation.
    """

    def __init__(self, message: str, reconciliation_required: bool = False) -> None:
        super().__init__(message)
        self.reconciliation_required = reconciliation_required


class NotFound(LedgerError):
    """The requested account or transaction does not exist."""


__all__ = [
    "LedgerError",
    "ValidationError",
    "InsufficientBalance",
    "RateUnavailable",
    "PersistenceFailure",
    "NotFound",
]
