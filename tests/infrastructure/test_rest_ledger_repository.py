"""Tests for the PostgREST-style ledger repository."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from src.domain.constants import MAX_BALANCE_UNITS
from src.domain.errors import (
    InsufficientBalance,
    NotFound,
    PersistenceFailure,
    ValidationError,
)
from src.domain.models.ledger import (
    PurchaseDetails,
    Transaction,
    TransactionFilter,
    TransactionStatus,
)
from src.infrastructure.rest_ledger_repository import (
    TRANSACTION_COLUMNS,
    RestLedgerRepository,
)

BASE_URL = "https://project.example.co/rest/v1"


def _response(payload=None, content: bytes | None = None) -> MagicMock:
    if content is None:
        content = b"" if payload is None else b"[...]"
    response = MagicMock()
    response.content = content
    response.json.return_value = payload
    return response


def _repository(*responses, logger=None):
    session = MagicMock()
    session.headers = {}
    session.request.side_effect = list(responses)
    repo = RestLedgerRepository(
        BASE_URL + "/",
        "secret",
        session=session,
        default_timeout=3.0,
        max_version_retries=2,
        logger=logger or MagicMock(),
    )
    return repo, session


def test_session_carries_api_key_headers() -> None:
    _, session = _repository()

    assert session.headers["apikey"] == "secret"
    assert session.headers["Authorization"] == "Bearer secret"


def test_read_balance_queries_balance_table() -> None:
    repo, session = _repository(
        _response([{"account_id": "alice", "balance_units": 540, "version": 3}])
    )

    snapshot = repo.read_balance("alice")

    assert snapshot.balance == Decimal("0.0540")
    assert snapshot.version == 3
    session.request.assert_called_once_with(
        "GET",
        f"{BASE_URL}/ledger_balances",
        params={
            "account_id": "eq.alice",
            "select": "account_id,balance_units,version",
        },
        json=None,
        headers={"Prefer": "return=minimal"},
        timeout=3.0,
    )


def test_read_balance_of_unknown_account_raises() -> None:
    repo, _ = _repository(_response([]))

    with pytest.raises(NotFound):
        repo.read_balance("carol")


def test_transport_errors_become_persistence_failures() -> None:
    repo, _ = _repository(requests.exceptions.ConnectionError("refused"))

    with pytest.raises(PersistenceFailure) as excinfo:
        repo.account_exists("alice")

    assert isinstance(excinfo.value.__cause__, requests.exceptions.ConnectionError)


def test_http_errors_become_persistence_failures() -> None:
    failing = _response([])
    failing.raise_for_status.side_effect = requests.exceptions.HTTPError("409")
    repo, _ = _repository(failing)

    with pytest.raises(PersistenceFailure):
        repo.update_transaction_status("tx1", TransactionStatus.FAILED)


def test_invalid_json_becomes_persistence_failure() -> None:
    broken = _response(content=b"<html>")
    broken.json.side_effect = ValueError("not json")
    repo, _ = _repository(broken)

    with pytest.raises(PersistenceFailure):
        repo.find_account_id_by_email("bob@example.com")


def test_apply_balance_delta_uses_version_check() -> None:
    repo, session = _repository(
        _response([{"account_id": "alice", "balance_units": 500, "version": 7}]),
        _response([{"account_id": "alice", "balance_units": 300, "version": 8}]),
    )

    snapshot = repo.apply_balance_delta("alice", Decimal("-0.0200"), timeout=1.0)

    assert snapshot.balance == Decimal("0.0300")
    patch_call = session.request.call_args_list[1]
    assert patch_call.args == ("PATCH", f"{BASE_URL}/ledger_balances")
    assert patch_call.kwargs["params"] == {
        "account_id": "eq.alice",
        "version": "eq.7",
    }
    assert patch_call.kwargs["json"] == {"balance_units": 300, "version": 8}
    assert patch_call.kwargs["headers"] == {"Prefer": "return=representation"}
    assert patch_call.kwargs["timeout"] == 1.0


def test_apply_balance_delta_retries_on_version_conflict() -> None:
    logger = MagicMock()
    repo, session = _repository(
        _response([{"account_id": "alice", "balance_units": 500, "version": 7}]),
        _response([]),
        _response([{"account_id": "alice", "balance_units": 600, "version": 8}]),
        _response([{"account_id": "alice", "balance_units": 400, "version": 9}]),
        logger=logger,
    )

    snapshot = repo.apply_balance_delta("alice", Decimal("-0.0200"))

    assert snapshot.version == 9
    assert session.request.call_count == 4
    logger.warning.assert_called_once()


def test_apply_balance_delta_gives_up_after_retries() -> None:
    balance = [{"account_id": "alice", "balance_units": 500, "version": 7}]
    repo, _ = _repository(
        _response(balance),
        _response([]),
        _response(balance),
        _response([]),
    )

    with pytest.raises(PersistenceFailure):
        repo.apply_balance_delta("alice", Decimal("0.0100"))


def test_apply_balance_delta_rejects_overdraft_without_patch() -> None:
    repo, session = _repository(
        _response([{"account_id": "alice", "balance_units": 500, "version": 7}])
    )

    with pytest.raises(InsufficientBalance):
        repo.apply_balance_delta("alice", Decimal("-0.0600"))

    assert session.request.call_count == 1


def test_apply_balance_delta_rejects_balance_beyond_storage_range() -> None:
    repo, session = _repository(
        _response(
            [
                {
                    "account_id": "alice",
                    "balance_units": MAX_BALANCE_UNITS - 100,
                    "version": 7,
                }
            ]
        )
    )

    with pytest.raises(ValidationError):
        repo.apply_balance_delta("alice", Decimal("0.0200"))

    assert session.request.call_count == 1


def test_apply_balance_delta_rejects_unstorable_delta() -> None:
    repo, session = _repository()

    with pytest.raises(ValidationError):
        repo.apply_balance_delta("alice", Decimal("1e20"))

    session.request.assert_not_called()


def test_atomic_writes_are_not_supported() -> None:
    repo, _ = _repository()

    assert repo.supports_atomic_writes is False
    with pytest.raises(PersistenceFailure):
        repo.write_transfer_atomically(MagicMock(), Decimal("1"))
    with pytest.raises(PersistenceFailure):
        repo.write_settlement_atomically(
            MagicMock(),
            TransactionStatus.COMPLETED,
            Decimal("0"),
        )


def test_open_account_removes_account_when_balance_insert_fails() -> None:
    repo, session = _repository(
        _response(),
        requests.exceptions.HTTPError("500"),
        _response(),
    )

    with pytest.raises(PersistenceFailure):
        repo.open_account("carol", "carol@example.com")

    delete_call = session.request.call_args_list[2]
    assert delete_call.args == ("DELETE", f"{BASE_URL}/ledger_accounts")
    assert delete_call.kwargs["params"] == {"account_id": "eq.carol"}


def test_conditional_status_update_reports_match() -> None:
    repo, session = _repository(_response([]), _response([{"id": "tx1"}]))

    missed = repo.update_transaction_status(
        "tx1",
        TransactionStatus.COMPLETED,
        expected_status=TransactionStatus.PENDING,
    )
    flagged = repo.update_transaction_status(
        "tx1",
        TransactionStatus.FAILED,
        needs_reconciliation=True,
    )

    assert missed is False
    assert flagged is True
    first, second = session.request.call_args_list
    assert first.kwargs["params"] == {"id": "eq.tx1", "status": "eq.pending"}
    assert second.kwargs["json"] == {
        "status": "failed",
        "needs_reconciliation": True,
    }


def test_append_and_list_transactions_share_row_format() -> None:
    transaction = Transaction(
        id="tx1",
        account_id="alice",
        amount=Decimal("0.0540"),
        status=TransactionStatus.COMPLETED,
        created_at=datetime(2024, 5, 1, 12, tzinfo=timezone.utc),
        details=PurchaseDetails(Decimal("100.00"), Decimal("1850.25")),
    )
    repo, session = _repository(_response(), _response())
    repo.append_transaction(transaction)
    row = session.request.call_args.kwargs["json"]
    session.request.side_effect = [_response([row])]

    listed = repo.list_transactions(
        "alice",
        TransactionFilter(
            limit=10,
            offset=5,
            since=datetime(2024, 5, 1, tzinfo=timezone.utc),
        ),
    )

    assert listed == [transaction]
    assert row["amount_units"] == 540
    params = session.request.call_args.kwargs["params"]
    assert params == {
        "account_id": "eq.alice",
        "select": TRANSACTION_COLUMNS,
        "order": "created_at.desc,id.desc",
        "limit": "10",
        "offset": "5",
        "created_at": "gte.2024-05-01T00:00:00.000000+00:00",
    }
