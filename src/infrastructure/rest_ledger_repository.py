"""Ledger repository for a PostgREST-style backend-as-a-service.

Hosted backends that expose tables over REST (Supabase and similar) commit one
request at a time, so this adapter does not support atomic multi-row writes.
It offers the single-row primitives the transfer service needs for its
compensating protocol. Balance changes use an optimistic ``version`` check:
the PATCH only matches when the row still carries the version that was read.
"""

from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import requests

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
from src.infrastructure.logging.logger import get_app_logger
from src.utils.decimal_utils import amount_to_units, from_units, to_units

TRANSACTION_COLUMNS = (
    "id,account_id,kind,amount_units,status,counterpart,counterpart_account_id,"
    "usd_amount,rate_price,notes,needs_reconciliation,created_at"
)


class RestLedgerRepository(LedgerRepositoryPort):
    """Ledger repository speaking the PostgREST table protocol."""

    supports_atomic_writes = False

    def __init__(
        self,
        base_url: str,
        api_key: str,
        session: requests.Session | None = None,
        default_timeout: float = 10.0,
        max_version_retries: int = 5,
        logger=None,
    ) -> None:
        """Initialize the repository.

        Args:
            base_url: REST root, e.g. ``https://<project>.supabase.co/rest/v1``.
            api_key: Service API key sent as ``apikey`` and bearer token.
            session: Optional ``requests.Session`` (injected in tests).
            default_timeout: Timeout used when a call passes none.
            max_version_retries: Attempts before a contended balance update
                gives up.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )
        self._default_timeout = default_timeout
        self._max_version_retries = max_version_retries
        self._logger = logger or get_app_logger()

    def account_exists(self, account_id: str, timeout: float | None = None) -> bool:
        rows = self._request(
            "GET",
            "ledger_accounts",
            params={"account_id": f"eq.{account_id}", "select": "account_id"},
            timeout=timeout,
        )
        return bool(rows)

    def find_account_id_by_email(
        self,
        email: str,
        timeout: float | None = None,
    ) -> str | None:
        rows = self._request(
            "GET",
            "ledger_accounts",
            params={"email": f"eq.{email}", "select": "account_id"},
            timeout=timeout,
        )
        return rows[0]["account_id"] if rows else None

    def open_account(
        self,
        account_id: str,
        email: str,
        timeout: float | None = None,
    ) -> BalanceSnapshot:
        self._request(
            "POST",
            "ledger_accounts",
            json={
                "account_id": account_id,
                "email": email,
                "created_at": format_timestamp(datetime.now(timezone.utc)),
            },
            timeout=timeout,
        )
        try:
            self._request(
                "POST",
                "ledger_balances",
                json={"account_id": account_id, "balance_units": 0, "version": 0},
                timeout=timeout,
            )
        except PersistenceFailure:
            self._request(
                "DELETE",
                "ledger_accounts",
                params={"account_id": f"eq.{account_id}"},
                timeout=timeout,
            )
            raise
        return BalanceSnapshot(account_id=account_id, balance=from_units(0), version=0)

    def read_balance(
        self,
        account_id: str,
        timeout: float | None = None,
    ) -> BalanceSnapshot:
        rows = self._request(
            "GET",
            "ledger_balances",
            params={
                "account_id": f"eq.{account_id}",
                "select": "account_id,balance_units,version",
            },
            timeout=timeout,
        )
        if not rows:
            raise NotFound(f"Account not found: {account_id}")
        return self._row_to_snapshot(rows[0])

    def write_transfer_atomically(
        self,
        transaction: Transaction,
        balance_delta: Decimal,
        linked_entries: Sequence[LedgerEntry] = (),
        timeout: float | None = None,
    ) -> Transaction:
        raise PersistenceFailure(
            "REST backend has no multi-row commit; use the compensating protocol"
        )

    def write_settlement_atomically(
        self,
        transaction: Transaction,
        status: TransactionStatus,
        balance_delta: Decimal,
        timeout: float | None = None,
    ) -> Transaction:
        raise PersistenceFailure(
            "REST backend has no multi-row commit; use the compensating protocol"
        )

    def append_transaction(
        self,
        transaction: Transaction,
        timeout: float | None = None,
    ) -> Transaction:
        self._request(
            "POST",
            "ledger_transactions",
            json=transaction_to_row(transaction),
            timeout=timeout,
        )
        return transaction

    def apply_balance_delta(
        self,
        account_id: str,
        balance_delta: Decimal,
        timeout: float | None = None,
    ) -> BalanceSnapshot:
        """Apply a delta with an optimistic version check.

        Raises:
            InsufficientBalance: If the delta would overdraw the account.
            ValidationError: If the balance would leave the storage range.
            PersistenceFailure: If the row stays contended after all retries.
        """
        delta_units = amount_to_units(balance_delta)
        for attempt in range(1, self._max_version_retries + 1):
            snapshot = self.read_balance(account_id, timeout=timeout)
            new_units = to_units(snapshot.balance) + delta_units
            if new_units < 0:
                raise InsufficientBalance(
                    account_id,
                    requested=-balance_delta,
                    available=snapshot.balance,
                )
            if new_units > MAX_BALANCE_UNITS:
                raise ValidationError("amount", "Amount is too large")
            rows = self._request(
                "PATCH",
                "ledger_balances",
                params={
                    "account_id": f"eq.{account_id}",
                    "version": f"eq.{snapshot.version}",
                },
                json={
                    "balance_units": new_units,
                    "version": snapshot.version + 1,
                },
                prefer="return=representation",
                timeout=timeout,
            )
            if rows:
                return self._row_to_snapshot(rows[0])
            self._logger.warning(
                f"Balance version conflict for {account_id} "
                f"(attempt {attempt}/{self._max_version_retries})"
            )
        raise PersistenceFailure(
            f"Balance for {account_id} kept changing; update abandoned"
        )

    def update_transaction_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        expected_status: TransactionStatus | None = None,
        needs_reconciliation: bool | None = None,
        timeout: float | None = None,
    ) -> bool:
        params = {"id": f"eq.{transaction_id}"}
        if expected_status is not None:
            params["status"] = f"eq.{expected_status.value}"
        payload: dict[str, Any] = {"status": status.value}
        if needs_reconciliation is not None:
            payload["needs_reconciliation"] = needs_reconciliation
        rows = self._request(
            "PATCH",
            "ledger_transactions",
            params=params,
            json=payload,
            prefer="return=representation",
            timeout=timeout,
        )
        return bool(rows)

    def get_transaction(
        self,
        transaction_id: str,
        timeout: float | None = None,
    ) -> Transaction:
        rows = self._request(
            "GET",
            "ledger_transactions",
            params={"id": f"eq.{transaction_id}", "select": TRANSACTION_COLUMNS},
            timeout=timeout,
        )
        if not rows:
            raise NotFound(f"Transaction not found: {transaction_id}")
        return row_to_transaction(rows[0])

    def list_transactions(
        self,
        account_id: str,
        transaction_filter: TransactionFilter,
        timeout: float | None = None,
    ) -> list[Transaction]:
        params = {
            "account_id": f"eq.{account_id}",
            "select": TRANSACTION_COLUMNS,
            "order": "created_at.desc,id.desc",
            "limit": str(transaction_filter.limit),
            "offset": str(transaction_filter.offset),
        }
        if transaction_filter.since is not None:
            params["created_at"] = f"gte.{format_timestamp(transaction_filter.since)}"
        rows = self._request(
            "GET",
            "ledger_transactions",
            params=params,
            timeout=timeout,
        )
        return [row_to_transaction(row) for row in rows]

    def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str = "return=minimal",
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        """Send one REST call and return the decoded rows.

        Args:
            method: HTTP method.
            table: Table name appended to the base URL.
            params: PostgREST filter and paging parameters.
            json: Optional JSON body.
            prefer: Value of the ``Prefer`` header.
            timeout: Optional timeout in seconds.

        Returns:
            list[dict[str, Any]]: Rows returned by the backend (empty when the
            response has no body).

        Raises:
            PersistenceFailure: On transport errors or non-2xx responses.
        """
        try:
            response = self._session.request(
                method,
                f"{self._base_url}/{table}",
                params=params,
                json=json,
                headers={"Prefer": prefer},
                timeout=timeout if timeout is not None else self._default_timeout,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise PersistenceFailure(f"{method} {table} failed: {exc}") from exc
        if not response.content:
            return []
        try:
            payload = response.json()
        except ValueError as exc:
            raise PersistenceFailure(
                f"{method} {table} returned invalid JSON"
            ) from exc
        return payload if isinstance(payload, list) else [payload]

    @staticmethod
    def _row_to_snapshot(row: dict[str, Any]) -> BalanceSnapshot:
        return BalanceSnapshot(
            account_id=row["account_id"],
            balance=from_units(row["balance_units"]),
            version=int(row["version"]),
        )


__all__ = ["RestLedgerRepository", "TRANSACTION_COLUMNS"]
