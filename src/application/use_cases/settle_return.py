"""Use case for the external settlement of pending returns."""

from src.application.ports.ledger_repository import LedgerRepositoryPort
from src.domain.errors import LedgerError, PersistenceFailure, ValidationError
from src.domain.models.ledger import (
    Transaction,
    TransactionKind,
    TransactionStatus,
)
from src.infrastructure.logging.logger import get_app_logger, get_usage_logger

SETTLEMENT_OUTCOMES = (TransactionStatus.COMPLETED, TransactionStatus.FAILED)


class SettleReturnUseCase:
    """Complete a pending return, or fail it and refund the Aurum."""

    def __init__(
        self,
        repository: LedgerRepositoryPort,
        logger=None,
        usage_logger=None,
    ) -> None:
        """Initialize the use case.

        Args:
            repository: Ledger persistence port.
            logger: Optional logger compatible with logging.Logger-like API.
            usage_logger: Optional audit logger.
        """
        self._repository = repository
        self._logger = logger or get_app_logger()
        self._usage_logger = usage_logger or get_usage_logger()

    def execute(
        self,
        transaction_id: str,
        outcome: TransactionStatus | str,
    ) -> Transaction:
        """Settle one return transaction.

        Args:
            transaction_id: Identifier of the pending return.
            outcome: ``completed`` or ``failed``.

        Returns:
            Transaction: The transaction with its settled status.

        Raises:
            ValidationError: If the outcome is invalid or the transaction is
                not a pending return.
            NotFound: If the transaction does not exist.
            PersistenceFailure: If the backend fails.
        """
        try:
            status = TransactionStatus(outcome)
        except ValueError:
            status = None
        if status not in SETTLEMENT_OUTCOMES:
            raise ValidationError("outcome", "Outcome must be completed or failed")

        transaction = self._repository.get_transaction(transaction_id)
        if transaction.kind is not TransactionKind.RETURN:
            raise ValidationError("transaction_id", "Only returns can be settled")
        if transaction.status is not TransactionStatus.PENDING:
            raise ValidationError("status", "Transaction is no longer pending")

        refund = transaction.amount if status is TransactionStatus.FAILED else 0
        if status is TransactionStatus.COMPLETED:
            settled = self._complete(transaction)
        elif self._repository.supports_atomic_writes:
            settled = self._repository.write_settlement_atomically(
                transaction,
                status,
                transaction.amount,
            )
        else:
            settled = self._fail_with_refund(transaction)

        self._usage_logger.info(
            f"settle-return id={transaction_id} status={status.value} "
            f"refund={refund}"
        )
        return settled

    def _complete(self, transaction: Transaction) -> Transaction:
        updated = self._repository.update_transaction_status(
            transaction.id,
            TransactionStatus.COMPLETED,
            expected_status=TransactionStatus.PENDING,
        )
        if not updated:
            raise ValidationError("status", "Transaction is no longer pending")
        return transaction.with_status(TransactionStatus.COMPLETED)

    def _fail_with_refund(self, transaction: Transaction) -> Transaction:
        """Mark the return failed, then credit the amount back.

        The status change is conditional on ``pending`` so that only one
        settlement can refund.
        """
        updated = self._repository.update_transaction_status(
            transaction.id,
            TransactionStatus.FAILED,
            expected_status=TransactionStatus.PENDING,
        )
        if not updated:
            raise ValidationError("status", "Transaction is no longer pending")
        try:
            self._repository.apply_balance_delta(
                transaction.account_id,
                transaction.amount,
            )
        except LedgerError as exc:
            self._logger.critical(
                f"Refund of {transaction.amount} to {transaction.account_id} "
                f"for failed return {transaction.id} did not apply: {exc!r}"
            )
            try:
                self._repository.update_transaction_status(
                    transaction.id,
                    TransactionStatus.FAILED,
                    needs_reconciliation=True,
                )
            except LedgerError as flag_exc:
                self._logger.critical(
                    f"Could not flag transaction {transaction.id}: {flag_exc!r}"
                )
            raise PersistenceFailure(
                f"Refund for {transaction.id} requires reconciliation",
                reconciliation_required=True,
            ) from exc
        return transaction.with_status(TransactionStatus.FAILED)


__all__ = ["SettleReturnUseCase", "SETTLEMENT_OUTCOMES"]
