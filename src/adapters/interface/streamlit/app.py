"""Streamlit dashboard entry point."""

from collections.abc import Mapping, Sequence
from decimal import Decimal
import os
from typing import Any

import streamlit as st

from src.application.use_cases.error_messages import user_message
from src.domain.errors import LedgerError
from src.domain.models.ledger import (
    AccountOverview,
    Transaction,
    TransactionKind,
)
from src.domain.models.rates import RateQuote
from src.infrastructure.container import (
    build_account_overview_use_case,
    build_list_transactions_use_case,
    build_rate_use_case,
    build_transfer_service,
)
from src.infrastructure.logging.logger import get_app_logger

PAGES = ["Dashboard", "Buy Gold", "Send Aurum", "Return Aurum", "Transactions"]


def _fetch_rate() -> RateQuote:
    """Fetch a fresh gold rate quote."""
    return build_rate_use_case().execute()


@st.cache_data(ttl=30, show_spinner=False)
def _load_rate() -> RateQuote:
    """Cached wrapper around _fetch_rate for Streamlit sessions."""
    return _fetch_rate()


def _fetch_overview(account_id: str) -> AccountOverview:
    """Fetch balance, value and recent transactions of the account."""
    return build_account_overview_use_case().execute(account_id)


def _fetch_transactions(account_id: str, limit: int) -> list[Transaction]:
    """Fetch the most recent transactions of the account."""
    return build_list_transactions_use_case().execute(account_id, limit=limit)


def _submit_transfer(
    account_id: str,
    kind: TransactionKind,
    fields: Mapping[str, Any],
) -> tuple[bool, str]:
    """Apply one transfer and return a status flag with a display message.

    Args:
        account_id: Account performing the operation.
        kind: purchase, send or return.
        fields: Raw form fields.

    Returns:
        tuple[bool, str]: Whether the operation succeeded and the message to
        show to the user.
    """
    try:
        transaction = build_transfer_service().apply_transfer(
            account_id,
            kind,
            fields,
        )
    except LedgerError as exc:
        get_app_logger().warning(f"{kind.value} by {account_id} rejected: {exc!r}")
        return False, user_message(exc)
    return True, _success_message(transaction)


def _success_message(transaction: Transaction) -> str:
    """Describe a persisted transaction to the user."""
    amount = _format_aurum(transaction.amount)
    if transaction.kind is TransactionKind.PURCHASE:
        return (
            f"Purchase successful! You've purchased {amount} "
            f"for {_format_usd(transaction.usd_amount)}"
        )
    if transaction.kind is TransactionKind.SEND:
        return f"Aurum sent successfully! Sent {amount} to {transaction.counterpart}"
    return (
        f"Return request submitted! {amount} "
        f"({_format_usd(transaction.usd_amount)}) will be paid out "
        "once the transfer is processed"
    )


def _format_aurum(value: Decimal) -> str:
    """Format Aurum amounts for display."""
    return f"{value:,.4f} AUR"


def _format_usd(value: Decimal | None) -> str:
    """Format currency values for display."""
    if value is None:
        return "—"
    return f"${value:,.2f}"


def _transactions_table(
    transactions: Sequence[Transaction],
) -> list[dict[str, str]]:
    """Build dataframe rows for a list of transactions."""
    return [
        {
            "Date": transaction.created_at.strftime("%Y-%m-%d %H:%M"),
            "Type": transaction.kind.value.capitalize(),
            "Amount": _format_aurum(transaction.amount),
            "USD": _format_usd(transaction.usd_amount),
            "Counterpart": transaction.counterpart or "—",
            "Status": transaction.status.value,
            "Notes": transaction.notes or "",
        }
        for transaction in transactions
    ]


def _render_rate() -> RateQuote | None:
    """Render the current rate, or a warning when it is unavailable."""
    try:
        quote = _load_rate()
    except LedgerError as exc:
        st.warning(user_message(exc))
        return None
    st.metric(
        f"{quote.asset}/{quote.currency}",
        _format_usd(quote.price),
        help=f"As of {quote.timestamp:%Y-%m-%d %H:%M:%S} UTC",
    )
    return quote


def _render_dashboard(account_id: str) -> None:
    """Render balance, value and recent activity."""
    try:
        overview = _fetch_overview(account_id)
    except LedgerError as exc:
        st.error(user_message(exc))
        return
    balance_col, value_col, rate_col = st.columns(3)
    balance_col.metric("Balance", _format_aurum(overview.balance))
    value_col.metric("Value", _format_usd(overview.value_usd))
    rate_col.metric(
        "Gold Rate",
        _format_usd(overview.quote.price) if overview.quote else "—",
    )
    st.subheader("Recent Transactions")
    if not overview.recent_transactions:
        st.info("No transactions yet. Buy your first Aurum to get started.")
        return
    st.dataframe(
        _transactions_table(overview.recent_transactions),
        width="stretch",
        hide_index=True,
    )


def _render_result(ok: bool, message: str) -> None:
    if ok:
        st.success(message)
    else:
        st.error(message)


def _render_buy(account_id: str) -> None:
    """Render the purchase form."""
    _render_rate()
    with st.form("buy_gold"):
        usd_amount = st.text_input("Amount (USD)", placeholder="100.00")
        submitted = st.form_submit_button("Buy Aurum")
    if submitted:
        _render_result(
            *_submit_transfer(
                account_id,
                TransactionKind.PURCHASE,
                {"usd_amount": usd_amount},
            )
        )


def _render_send(account_id: str) -> None:
    """Render the send form."""
    with st.form("send_aurum"):
        recipient = st.text_input(
            "Recipient email",
            placeholder="recipient@example.com",
        )
        amount = st.text_input("Amount (AUR)", placeholder="0.0000")
        notes = st.text_area(
            "Notes (optional)",
            placeholder="Add a message for the recipient...",
        )
        submitted = st.form_submit_button("Send Aurum")
    st.caption("Transfers are instant and cannot be reversed.")
    if submitted:
        _render_result(
            *_submit_transfer(
                account_id,
                TransactionKind.SEND,
                {"recipient_email": recipient, "amount": amount, "notes": notes},
            )
        )


def _render_return(account_id: str) -> None:
    """Render the return form."""
    _render_rate()
    with st.form("return_aurum"):
        amount = st.text_input("Amount (AUR)", placeholder="0.0000")
        bank_account = st.text_input("Bank account")
        notes = st.text_area("Notes (optional)")
        submitted = st.form_submit_button("Return Aurum")
    st.caption("Returns stay pending until the bank transfer is processed.")
    if submitted:
        _render_result(
            *_submit_transfer(
                account_id,
                TransactionKind.RETURN,
                {"amount": amount, "bank_account": bank_account, "notes": notes},
            )
        )


def _render_transactions(account_id: str) -> None:
    """Render the transaction history table."""
    limit = st.sidebar.selectbox("Show", [25, 50, 100, 500], index=1)
    try:
        transactions = _fetch_transactions(account_id, limit)
    except LedgerError as exc:
        st.error(user_message(exc))
        return
    st.caption(f"{len(transactions)} transactions shown")
    if not transactions:
        st.info("No transactions yet.")
        return
    st.dataframe(
        _transactions_table(transactions),
        width="stretch",
        hide_index=True,
        height=420,
    )


def main() -> None:
    """Render the Streamlit app."""
    st.set_page_config(page_title="Aurum", layout="wide")
    st.title("Aurum")

    account_id = st.sidebar.text_input(
        "Account",
        value=os.getenv("AURUM_ACCOUNT_ID", ""),
    ).strip()
    page = st.sidebar.selectbox("Page", PAGES)
    if not account_id:
        st.warning("Enter your account id to continue.")
        return

    if page == "Dashboard":
        _render_dashboard(account_id)
    elif page == "Buy Gold":
        _render_buy(account_id)
    elif page == "Send Aurum":
        _render_send(account_id)
    elif page == "Return Aurum":
        _render_return(account_id)
    else:
        _render_transactions(account_id)


if __name__ == "__main__":  # pragma: no cover
    main()
