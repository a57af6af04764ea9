"""Command-line adapter for the Aurum ledger.

This module wires the ledger use cases to the configured adapters and exposes
one subcommand per operation. The acting account is read from
``AURUM_ACCOUNT_ID`` unless ``--account`` is given.
"""

import argparse
from collections.abc import Sequence
from datetime import datetime, timezone

from src.application.use_cases.error_messages import user_message
from src.domain.errors import LedgerError
from src.domain.models.ledger import Transaction
from src.infrastructure.container import (
    build_account_overview_use_case,
    build_identity_provider,
    build_ledger_repository,
    build_list_transactions_use_case,
    build_open_account_use_case,
    build_rate_use_case,
    build_settle_return_use_case,
    build_transfer_service,
)
from src.infrastructure.ledger_repository import SqlAlchemyLedgerRepository
from src.infrastructure.logging.logger import get_app_logger
from src.infrastructure.settings import LedgerSettings


def _parse_since(value: str) -> datetime:
    """Parse an ISO date or datetime into an aware UTC datetime.

    Raises:
        argparse.ArgumentTypeError: If the value is not ISO formatted.
    """
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid date '{value}'. Expected format YYYY-MM-DD."
        ) from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aurum",
        description="Buy, send and return Aurum digital gold.",
    )
    parser.add_argument(
        "--account",
        help="Acting account id (defaults to AURUM_ACCOUNT_ID).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the ledger tables.")

    open_account = commands.add_parser("open-account", help="Register an account.")
    open_account.add_argument("email")

    commands.add_parser("rate", help="Show the current gold rate.")
    commands.add_parser("balance", help="Show balance, value and recent activity.")

    purchase = commands.add_parser("purchase", help="Buy Aurum with USD.")
    purchase.add_argument("usd_amount")

    send = commands.add_parser("send", help="Send Aurum to another account.")
    send.add_argument("recipient_email")
    send.add_argument("amount")
    send.add_argument("--notes")

    return_parser = commands.add_parser("return", help="Return Aurum for cash.")
    return_parser.add_argument("amount")
    return_parser.add_argument("bank_account")
    return_parser.add_argument("--notes")

    history = commands.add_parser("history", help="List transactions.")
    history.add_argument("--limit", type=int, default=50)
    history.add_argument("--offset", type=int, default=0)
    history.add_argument("--since", type=_parse_since)

    settle = commands.add_parser("settle-return", help="Settle a pending return.")
    settle.add_argument("transaction_id")
    settle.add_argument("outcome", choices=["completed", "failed"])
    return parser


def _format_transaction(transaction: Transaction) -> str:
    """Render one transaction as a single output line."""
    parts = [
        transaction.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        transaction.kind.value,
        f"{transaction.amount:.4f} AUR",
        transaction.status.value,
    ]
    if transaction.usd_amount is not None:
        parts.append(f"${transaction.usd_amount:,.2f}")
    if transaction.counterpart:
        parts.append(transaction.counterpart)
    if transaction.needs_reconciliation:
        parts.append("needs reconciliation")
    parts.append(transaction.id)
    return "  ".join(parts)


def _transfer_fields(args: argparse.Namespace) -> dict[str, str | None]:
    """Collect the raw input fields of a purchase, send or return."""
    if args.command == "purchase":
        return {"usd_amount": args.usd_amount}
    if args.command == "send":
        return {
            "recipient_email": args.recipient_email,
            "amount": args.amount,
            "notes": args.notes,
        }
    return {
        "amount": args.amount,
        "bank_account": args.bank_account,
        "notes": args.notes,
    }


def _resolve_account(args: argparse.Namespace) -> str:
    return args.account or build_identity_provider().current_account_id()


def _run(args: argparse.Namespace, settings: LedgerSettings) -> None:
    """Dispatch one parsed command."""
    if args.command == "init-db":
        repository = build_ledger_repository(settings)
        if not isinstance(repository, SqlAlchemyLedgerRepository):
            print("init-db only applies to the sqlalchemy backend.")
            return
        repository.create_schema()
        print("Ledger schema is ready.")
        return

    if args.command == "rate":
        quote = build_rate_use_case(settings).execute()
        print(
            f"1 {quote.asset} = {quote.price:,.2f} {quote.currency} "
            f"(as of {quote.timestamp.isoformat()})"
        )
        return

    if args.command == "settle-return":
        settled = build_settle_return_use_case(
            build_ledger_repository(settings)
        ).execute(args.transaction_id, args.outcome)
        print(_format_transaction(settled))
        return

    account_id = _resolve_account(args)

    if args.command == "open-account":
        snapshot = build_open_account_use_case(
            build_ledger_repository(settings)
        ).execute(account_id, args.email)
        print(f"Account {account_id} ready with {snapshot.balance:.4f} AUR.")
    elif args.command == "balance":
        overview = build_account_overview_use_case(settings).execute(account_id)
        print(f"Balance: {overview.balance:.4f} AUR")
        if overview.value_usd is not None:
            print(f"Value: ${overview.value_usd:,.2f}")
        else:
            print("Value: unavailable")
        for transaction in overview.recent_transactions:
            print(_format_transaction(transaction))
    elif args.command == "history":
        transactions = build_list_transactions_use_case(
            build_ledger_repository(settings)
        ).execute(
            account_id,
            limit=args.limit,
            offset=args.offset,
            since=args.since,
            timeout=settings.timeout_seconds,
        )
        if not transactions:
            print("No transactions yet.")
        for transaction in transactions:
            print(_format_transaction(transaction))
    else:
        fields = _transfer_fields(args)
        transaction = build_transfer_service(settings).apply_transfer(
            account_id,
            args.command,
            fields,
            timeout=settings.timeout_seconds,
        )
        print(_format_transaction(transaction))


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Aurum command-line interface.

    Args:
        argv: Optional argument list; ``sys.argv`` is used when omitted.

    Returns:
        int: Process exit code (0 on success, 1 on a ledger error).
    """
    logger = get_app_logger()
    args = _build_parser().parse_args(argv)
    settings = LedgerSettings.from_env()
    try:
        _run(args, settings)
    except LedgerError as exc:
        logger.error(f"aurum {args.command} failed: {exc!r}")
        print(f"Error: {user_message(exc)}")
        return 1
    return 0


__all__ = ["main"]


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
