"""Use case to register an account with a zero balance."""

from src.application.ports.ledger_repository import LedgerRepositoryPort
from src.domain.errors import ValidationError
from src.domain.models.ledger import BalanceSnapshot
from src.domain.services.validation import normalize_email
from src.infrastructure.logging.logger import get_app_logger


class OpenAccountUseCase:
    """Create the ledger side of an authenticated identity."""

    def __init__(self, repository: LedgerRepositoryPort, logger=None) -> None:
        """Initialize the use case.

        Args:
            repository: Ledger persistence port.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._repository = repository
        self._logger = logger or get_app_logger()

    def execute(self, account_id: str, email: str) -> BalanceSnapshot:
        """Open the account, or return its balance if it already exists.

        Raises:
            ValidationError: If the email is invalid or used by another
                account, or the account id is blank.
        """
        if not account_id or not account_id.strip():
            raise ValidationError("account_id", "Account id is required")
        normalized = normalize_email("email", email)
        owner = self._repository.find_account_id_by_email(normalized)
        if owner is not None and owner != account_id:
            raise ValidationError("email", "Email is already registered")
        if owner == account_id:
            return self._repository.read_balance(account_id)
        if self._repository.account_exists(account_id):
            raise ValidationError(
                "account_id",
                "Account is registered with a different email",
            )
        snapshot = self._repository.open_account(account_id, normalized)
        self._logger.info(f"Opened account {account_id}")
        return snapshot


__all__ = ["OpenAccountUseCase"]
