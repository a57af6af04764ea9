"""SQLAlchemy-backed ledger repository.

Every multi-row change runs inside a single ``engine.begin()`` block, so the
transaction rows and the balance updates they imply commit or roll back
together. Balance changes are conditional updates that keep the balance within
zero and the 64-bit column range, backed by a ``CHECK (balance_units >= 0)``
constraint; concurrent writers serialize on the balance row and the loser
observes zero affected rows.
"""

from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from src.application.ports.database import DatabaseEnginePort
from src.application.ports.ledger_repository import LedgerRepositoryPort
from src.domain.constants import MAX_BALANCE_UNITS
from src.domain.errors import (
    InsufficientBalance,
    NotFound,
    PersistenceFailure,
    ValidationError,
)
from src.domain.models.ledger import (
    BalanceSnapshot,
    LedgerEntry,
    Transaction,
    TransactionFilter,
    TransactionStatus,
)
from src.infrastructure.ledger_rows import (
    format_timestamp,
    row_to_transaction,
    transaction_to_row,
)
from src.utils.decimal_utils import amount_to_units, from_units


CREATE_SCHEMA_SQL = (
    """
    CREATE TABLE IF NOT EXISTS ledger_accounts (
        account_id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ledger_balances (
        account_id TEXT PRIMARY KEY REFERENCES ledger_accounts (account_id),
        balance_units BIGINT NOT NULL DEFAULT 0 CHECK (balance_units >= 0),
        version INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ledger_transactions (
        id TEXT PRIMARY KEY,
        account_id TEXT NOT NULL REFERENCES ledger_accounts (account_id),
        kind TEXT NOT NULL,
        amount_units BIGINT NOT NULL CHECK (amount_units > 0),
        status TEXT NOT NULL,
        counterpart TEXT,
        counterpart_account_id TEXT,
        usd_amount NUMERIC(18, 2),
        rate_price NUMERIC(18, 6),
        notes TEXT,
        needs_reconciliation BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS ix_ledger_transactions_account_created
    ON ledger_transactions (account_id, created_at)
    """,
)

SELECT_ACCOUNT_SQL = text(
    "SELECT account_id FROM ledger_accounts WHERE account_id = :account_id"
)

SELECT_ACCOUNT_BY_EMAIL_SQL = text(
    "SELECT account_id FROM ledger_accounts WHERE email = :email"
)

INSERT_ACCOUNT_SQL = text(
    """
    INSERT INTO ledger_accounts (account_id, email, created_at)
    VALUES (:account_id, :email, :created_at)
    """
)

INSERT_BALANCE_SQL = text(
    """
    INSERT INTO ledger_balances (account_id, balance_units, version)
    VALUES (:account_id, 0, 0)
    """
)

SELECT_BALANCE_SQL = text(
    """
    SELECT account_id, balance_units, version
    FROM ledger_balances
    WHERE account_id = :account_id
    """
)

APPLY_DELTA_SQL = text(
    """
    UPDATE ledger_balances
    SET balance_units = balance_units + :delta_units,
        version = version + 1
    WHERE account_id = :account_id
      AND balance_units >= :floor_units
      AND balance_units <= :ceiling_units
    """
)

INSERT_TRANSACTION_SQL = text(
    """
    INSERT INTO ledger_transactions (
        id,
        account_id,
        kind,
        amount_units,
        status,
        counterpart,
        counterpart_account_id,
        usd_amount,
        rate_price,
        notes,
        needs_reconciliation,
        created_at
    )
    VALUES (
        :id,
        :account_id,
        :kind,
        :amount_units,
        :status,
        :counterpart,
        :counterpart_account_id,
        :usd_amount,
        :rate_price,
        :notes,
        :needs_reconciliation,
        :created_at
    )
    """
)

SELECT_TRANSACTION_COLUMNS = """
    SELECT id, account_id, kind, amount_units, status, counterpart,
           counterpart_account_id, usd_amount, rate_price, notes,
           needs_reconciliation, created_at
    FROM ledger_transactions
"""

SELECT_TRANSACTION_SQL = text(SELECT_TRANSACTION_COLUMNS + " WHERE id = :id")


class SqlAlchemyLedgerRepository(LedgerRepositoryPort):
    """Ledger repository backed by a transactional SQL database."""

    supports_atomic_writes = True

    def __init__(self, db_port: DatabaseEnginePort) -> None:
        """Initialize the repository.

        Args:
            db_port: Port providing access to the ledger engine.
        """
        self._db_port = db_port

    def _engine(self) -> Engine:
        return self._db_port.get_ledger_engine()

    def create_schema(self) -> None:
        """Create the ledger tables if they do not exist."""
        try:
            with self._engine().begin() as conn:
                for statement in CREATE_SCHEMA_SQL:
                    conn.exec_driver_sql(statement)
        except SQLAlchemyError as exc:
            raise PersistenceFailure("Failed to create ledger schema") from exc

    def account_exists(self, account_id: str, timeout: float | None = None) -> bool:
        try:
            with self._engine().connect() as conn:
                self._apply_statement_timeout(conn, timeout)
                row = conn.execute(
                    SELECT_ACCOUNT_SQL,
                    {"account_id": account_id},
                ).first()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Failed to look up account {account_id}"
            ) from exc
        return row is not None

    def find_account_id_by_email(
        self,
        email: str,
        timeout: float | None = None,
    ) -> str | None:
        try:
            with self._engine().connect() as conn:
                self._apply_statement_timeout(conn, timeout)
                row = conn.execute(
                    SELECT_ACCOUNT_BY_EMAIL_SQL,
                    {"email": email},
                ).first()
        except SQLAlchemyError as exc:
            raise PersistenceFailure("Failed to look up account by email") from exc
        return row.account_id if row is not None else None

    def open_account(
        self,
        account_id: str,
        email: str,
        timeout: float | None = None,
    ) -> BalanceSnapshot:
        params = {
            "account_id": account_id,
            "email": email,
            "created_at": format_timestamp(datetime.now(timezone.utc)),
        }
        try:
            with self._engine().begin() as conn:
                self._apply_statement_timeout(conn, timeout)
                conn.execute(INSERT_ACCOUNT_SQL, params)
                conn.execute(INSERT_BALANCE_SQL, {"account_id": account_id})
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Failed to open account {account_id}"
            ) from exc
        return BalanceSnapshot(
            account_id=account_id,
            balance=from_units(0),
            version=0,
        )

    def read_balance(
        self,
        account_id: str,
        timeout: float | None = None,
    ) -> BalanceSnapshot:
        try:
            with self._engine().connect() as conn:
                self._apply_statement_timeout(conn, timeout)
                row = conn.execute(
                    SELECT_BALANCE_SQL,
                    {"account_id": account_id},
                ).first()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Failed to read balance for {account_id}"
            ) from exc
        if row is None:
            raise NotFound(f"Account not found: {account_id}")
        return self._row_to_snapshot(row)

    def write_transfer_atomically(
        self,
        transaction: Transaction,
        balance_delta: Decimal,
        linked_entries: Sequence[LedgerEntry] = (),
        timeout: float | None = None,
    ) -> Transaction:
        """Insert the transaction rows and apply their deltas in one commit.

        Balance rows are updated in account id order so that opposite
        transfers between the same two accounts lock rows in the same order.

        Args:
            transaction: Primary transaction of the transfer.
            balance_delta: Change to the primary account's balance.
            linked_entries: Additional transactions written in the same unit,
                such as the recipient side of a send.
            timeout: Optional statement timeout in seconds.

        Returns:
            Transaction: The primary transaction as persisted.

        Raises:
            InsufficientBalance: If a delta would overdraw an account.
            NotFound: If an account row is missing.
            PersistenceFailure: If the database rejects the write.
        """
        entries = [LedgerEntry(transaction, balance_delta), *linked_entries]
        try:
            with self._engine().begin() as conn:
                self._apply_statement_timeout(conn, timeout)
                for entry in sorted(
                    entries,
                    key=lambda item: item.transaction.account_id,
                ):
                    self._apply_delta(
                        conn,
                        entry.transaction.account_id,
                        entry.balance_delta,
                    )
                conn.execute(
                    INSERT_TRANSACTION_SQL,
                    [transaction_to_row(entry.transaction) for entry in entries],
                )
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Failed to write transfer {transaction.id}"
            ) from exc
        return transaction

    def write_settlement_atomically(
        self,
        transaction: Transaction,
        status: TransactionStatus,
        balance_delta: Decimal,
        timeout: float | None = None,
    ) -> Transaction:
        try:
            with self._engine().begin() as conn:
                self._apply_statement_timeout(conn, timeout)
                updated = self._update_status(
                    conn,
                    transaction.id,
                    status,
                    expected_status=TransactionStatus.PENDING,
                    needs_reconciliation=None,
                )
                if not updated:
                    raise ValidationError(
                        "status",
                        "Transaction is no longer pending",
                    )
                if balance_delta:
                    self._apply_delta(conn, transaction.account_id, balance_delta)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Failed to settle transaction {transaction.id}"
            ) from exc
        return transaction.with_status(status)

    def append_transaction(
        self,
        transaction: Transaction,
        timeout: float | None = None,
    ) -> Transaction:
        try:
            with self._engine().begin() as conn:
                self._apply_statement_timeout(conn, timeout)
                conn.execute(INSERT_TRANSACTION_SQL, transaction_to_row(transaction))
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Failed to insert transaction {transaction.id}"
            ) from exc
        return transaction

    def apply_balance_delta(
        self,
        account_id: str,
        balance_delta: Decimal,
        timeout: float | None = None,
    ) -> BalanceSnapshot:
        try:
            with self._engine().begin() as conn:
                self._apply_statement_timeout(conn, timeout)
                self._apply_delta(conn, account_id, balance_delta)
                row = conn.execute(
                    SELECT_BALANCE_SQL,
                    {"account_id": account_id},
                ).first()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Failed to update balance for {account_id}"
            ) from exc
        return self._row_to_snapshot(row)

    def update_transaction_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        expected_status: TransactionStatus | None = None,
        needs_reconciliation: bool | None = None,
        timeout: float | None = None,
    ) -> bool:
        try:
            with self._engine().begin() as conn:
                self._apply_statement_timeout(conn, timeout)
                return self._update_status(
                    conn,
                    transaction_id,
                    status,
                    expected_status=expected_status,
                    needs_reconciliation=needs_reconciliation,
                )
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Failed to update status of {transaction_id}"
            ) from exc

    def get_transaction(
        self,
        transaction_id: str,
        timeout: float | None = None,
    ) -> Transaction:
        try:
            with self._engine().connect() as conn:
                self._apply_statement_timeout(conn, timeout)
                row = conn.execute(
                    SELECT_TRANSACTION_SQL,
                    {"id": transaction_id},
                ).first()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Failed to read transaction {transaction_id}"
            ) from exc
        if row is None:
            raise NotFound(f"Transaction not found: {transaction_id}")
        return row_to_transaction(row._mapping)

    def list_transactions(
        self,
        account_id: str,
        transaction_filter: TransactionFilter,
        timeout: float | None = None,
    ) -> list[Transaction]:
        query, params = self._build_history_query(account_id, transaction_filter)
        try:
            with self._engine().connect() as conn:
                self._apply_statement_timeout(conn, timeout)
                rows = conn.execute(query, params).all()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Failed to list transactions for {account_id}"
            ) from exc
        return [row_to_transaction(row._mapping) for row in rows]

    def _apply_delta(
        self,
        conn: Connection,
        account_id: str,
        balance_delta: Decimal,
    ) -> None:
        """Apply a conditional balance change inside an open transaction.

        Raises:
            InsufficientBalance: If the update would make the balance negative.
            NotFound: If the account has no balance row.
            ValidationError: If the balance would leave the storage range.
        """
        delta_units = amount_to_units(balance_delta)
        result = conn.execute(
            APPLY_DELTA_SQL,
            {
                "account_id": account_id,
                "delta_units": delta_units,
                "floor_units": max(0, -delta_units),
                "ceiling_units": MAX_BALANCE_UNITS - max(0, delta_units),
            },
        )
        if result.rowcount == 1:
            return
        row = conn.execute(
            SELECT_BALANCE_SQL,
            {"account_id": account_id},
        ).first()
        if row is None:
            raise NotFound(f"Account not found: {account_id}")
        if delta_units > 0:
            raise ValidationError("amount", "Amount is too large")
        raise InsufficientBalance(
            account_id,
            requested=-balance_delta,
            available=from_units(row.balance_units),
        )

    def _update_status(
        self,
        conn: Connection,
        transaction_id: str,
        status: TransactionStatus,
        expected_status: TransactionStatus | None,
        needs_reconciliation: bool | None,
    ) -> bool:
        assignments = ["status = :status"]
        params = {"id": transaction_id, "status": status.value}
        if needs_reconciliation is not None:
            assignments.append("needs_reconciliation = :needs_reconciliation")
            params["needs_reconciliation"] = needs_reconciliation
        query = (
            "UPDATE ledger_transactions SET "
            + ", ".join(assignments)
            + " WHERE id = :id"
        )
        if expected_status is not None:
            query += " AND status = :expected_status"
            params["expected_status"] = expected_status.value
        result = conn.execute(text(query), params)
        return result.rowcount > 0

    @staticmethod
    def _build_history_query(
        account_id: str,
        transaction_filter: TransactionFilter,
    ):
        """Build the history query and its parameters.

        Args:
            account_id: Owner of the transactions.
            transaction_filter: Paging and time filter.

        Returns:
            tuple[TextClause, dict]: Query and bound parameters.
        """
        query = SELECT_TRANSACTION_COLUMNS + " WHERE account_id = :account_id"
        params = {
            "account_id": account_id,
            "limit": transaction_filter.limit,
            "offset": transaction_filter.offset,
        }
        if transaction_filter.since is not None:
            query += " AND created_at >= :since"
            params["since"] = format_timestamp(transaction_filter.since)
        query += " ORDER BY created_at DESC, id DESC LIMIT :limit OFFSET :offset"
        return text(query), params

    @staticmethod
    def _apply_statement_timeout(conn: Connection, timeout: float | None) -> None:
        """Bound statement time on backends that support it (PostgreSQL)."""
        if timeout is None or conn.dialect.name != "postgresql":
            return
        milliseconds = max(1, int(timeout * 1000))
        conn.exec_driver_sql(f"SET LOCAL statement_timeout = {milliseconds}")

    @staticmethod
    def _row_to_snapshot(row) -> BalanceSnapshot:
        return BalanceSnapshot(
            account_id=row.account_id,
            balance=from_units(row.balance_units),
            version=int(row.version),
        )


__all__ = [
    "SqlAlchemyLedgerRepository",
    "CREATE_SCHEMA_SQL",
    "APPLY_DELTA_SQL",
    "INSERT_TRANSACTION_SQL",
]
