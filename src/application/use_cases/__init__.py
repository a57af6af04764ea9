"""Application use cases package."""

from .apply_transfer import LedgerTransferService
from .error_messages import user_message
from .get_account_overview import GetAccountOverviewUseCase
from .get_current_rate import GetCurrentRateUseCase
from .list_transactions import ListTransactionsUseCase
from .open_account import OpenAccountUseCase
from .settle_return import SettleReturnUseCase

__all__ = [
    "LedgerTransferService",
    "user_message",
    "GetAccountOverviewUseCase",
    "GetCurrentRateUseCase",
    "ListTransactionsUseCase",
    "OpenAccountUseCase",
    "SettleReturnUseCase",
]
