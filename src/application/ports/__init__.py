"""Application ports package."""

from .database import DatabaseEnginePort
from .identity import IdentityProviderPort
from .ledger_repository import LedgerRepositoryPort
from .rate_provider import RateProviderPort

__all__ = [
    "DatabaseEnginePort",
    "IdentityProviderPort",
    "LedgerRepositoryPort",
    "RateProviderPort",
]
