"""Application port for the authenticated caller."""

from typing import Protocol


class IdentityProviderPort(Protocol):
    """Port yielding the account id of the authenticated caller."""

    def current_account_id(self) -> str:
        """Return the caller's account id."""


__all__ = ["IdentityProviderPort"]
