"""Tests for the Streamlit app module."""

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

from src.adapters.interface.streamlit import app
from src.domain.errors import NotFound, PersistenceFailure, ValidationError
from src.domain.models.ledger import (
    AccountOverview,
    PurchaseDetails,
    ReturnDetails,
    SendDetails,
    Transaction,
    TransactionKind,
    TransactionStatus,
)

CREATED = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def _transaction(details, status=TransactionStatus.COMPLETED) -> Transaction:
    return Transaction(
        id="tx1",
        account_id="alice",
        amount=Decimal("0.0540"),
        status=status,
        created_at=CREATED,
        details=details,
    )


def test_fetch_transactions_invokes_use_case(monkeypatch):
    """_fetch_transactions should build the use case and pass the limit."""
    use_case = MagicMock()
    use_case.execute.return_value = ["a"]
    monkeypatch.setattr(app, "build_list_transactions_use_case", lambda: use_case)

    result = app._fetch_transactions("alice", 25)

    assert result == ["a"]
    use_case.execute.assert_called_once_with("alice", limit=25)


def test_load_rate_uses_fetch(monkeypatch):
    """The cached loader should delegate to _fetch_rate."""
    app._load_rate.clear()
    monkeypatch.setattr(app, "_fetch_rate", lambda: "quote")

    assert app._load_rate() == "quote"


def test_submit_transfer_reports_purchase(monkeypatch):
    service = MagicMock()
    service.apply_transfer.return_value = _transaction(
        PurchaseDetails(Decimal("100.00"), Decimal("1850.25"))
    )
    monkeypatch.setattr(app, "build_transfer_service", lambda: service)

    ok, message = app._submit_transfer(
        "alice",
        TransactionKind.PURCHASE,
        {"usd_amount": "100.00"},
    )

    assert ok is True
    assert message == (
        "Purchase successful! You've purchased 0.0540 AUR for $100.00"
    )


def test_submit_transfer_reports_send_and_return(monkeypatch):
    service = MagicMock()
    monkeypatch.setattr(app, "build_transfer_service", lambda: service)

    service.apply_transfer.return_value = _transaction(
        SendDetails("bob@example.com", "bob")
    )
    _, sent = app._submit_transfer("alice", TransactionKind.SEND, {})
    service.apply_transfer.return_value = _transaction(
        ReturnDetails("12345678", Decimal("99.91"), Decimal("1850.25")),
        status=TransactionStatus.PENDING,
    )
    _, returned = app._submit_transfer("alice", TransactionKind.RETURN, {})

    assert sent == "Aurum sent successfully! Sent 0.0540 AUR to bob@example.com"
    assert returned.startswith("Return request submitted! 0.0540 AUR ($99.91)")


def test_submit_transfer_maps_errors_to_user_messages(monkeypatch):
    service = MagicMock()
    monkeypatch.setattr(app, "build_transfer_service", lambda: service)
    monkeypatch.setattr(app, "get_app_logger", lambda: MagicMock())

    service.apply_transfer.side_effect = ValidationError(
        "usd_amount",
        "Minimum purchase is $10.00",
    )
    invalid = app._submit_transfer("alice", TransactionKind.PURCHASE, {})
    service.apply_transfer.side_effect = PersistenceFailure("db password wrong")
    failed = app._submit_transfer("alice", TransactionKind.PURCHASE, {})

    assert invalid == (False, "Minimum purchase is $10.00")
    assert failed == (False, "Something went wrong. Please try again.")


def test_transactions_table_formats_rows():
    rows = app._transactions_table(
        [
            _transaction(PurchaseDetails(Decimal("100.00"), Decimal("1850.25"))),
            _transaction(SendDetails("bob@example.com", "bob")),
        ]
    )

    assert rows[0] == {
        "Date": "2024-05-01 12:30",
        "Type": "Purchase",
        "Amount": "0.0540 AUR",
        "USD": "$100.00",
        "Counterpart": "—",
        "Status": "completed",
        "Notes": "",
    }
    assert rows[1]["USD"] == "—"
    assert rows[1]["Counterpart"] == "bob@example.com"


class _FakeColumn:
    def __init__(self) -> None:
        self.metrics: list[tuple] = []

    def metric(self, *args, **kwargs):
        self.metrics.append(args)


class _FakeStreamlit:
    def __init__(self, account: str = "alice", page: str = "Dashboard") -> None:
        self.sidebar = SimpleNamespace(
            text_input=lambda *args, **kwargs: account,
            selectbox=lambda label, options, **kwargs: page,
        )
        self.columns_created: list[_FakeColumn] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.infos: list[str] = []
        self.dataframe_payload = None

    def set_page_config(self, **kwargs):
        self.config_kwargs = kwargs

    def title(self, text: str):
        self.title_text = text

    def subheader(self, text: str):
        self.subheader_text = text

    def caption(self, text: str):
        self.caption_text = text

    def warning(self, text: str):
        self.warnings.append(text)

    def error(self, text: str):
        self.errors.append(text)

    def info(self, text: str):
        self.infos.append(text)

    def columns(self, count: int):
        self.columns_created = [_FakeColumn() for _ in range(count)]
        return self.columns_created

    def dataframe(self, data, **kwargs):
        self.dataframe_payload = (data, kwargs)


def test_main_requires_account(monkeypatch):
    fake_st = _FakeStreamlit(account="")
    monkeypatch.setattr(app, "st", fake_st)

    app.main()

    assert fake_st.warnings == ["Enter your account id to continue."]


def test_main_renders_dashboard(monkeypatch):
    fake_st = _FakeStreamlit()
    overview = AccountOverview(
        account_id="alice",
        balance=Decimal("0.0540"),
        quote=SimpleNamespace(price=Decimal("1850.25")),
        value_usd=Decimal("99.91"),
        recent_transactions=[
            _transaction(PurchaseDetails(Decimal("100.00"), Decimal("1850.25")))
        ],
    )
    monkeypatch.setattr(app, "st", fake_st)
    monkeypatch.setattr(app, "_fetch_overview", lambda account_id: overview)

    app.main()

    balance_col, value_col, rate_col = fake_st.columns_created
    assert balance_col.metrics == [("Balance", "0.0540 AUR")]
    assert value_col.metrics == [("Value", "$99.91")]
    assert rate_col.metrics == [("Gold Rate", "$1,850.25")]
    rows, kwargs = fake_st.dataframe_payload
    assert rows[0]["Amount"] == "0.0540 AUR"
    assert kwargs["hide_index"] is True


def test_main_shows_error_for_missing_account(monkeypatch):
    fake_st = _FakeStreamlit(page="Transactions")
    monkeypatch.setattr(app, "st", fake_st)

    def _missing(account_id, limit):
        raise NotFound(account_id)

    monkeypatch.setattr(app, "_fetch_transactions", _missing)

    app.main()

    assert fake_st.errors == [
        "The requested account or transaction was not found."
    ]
