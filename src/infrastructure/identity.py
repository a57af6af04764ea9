"""Identity adapters implementing IdentityProviderPort."""

import os

from src.application.ports.identity import IdentityProviderPort


class StaticIdentityProvider(IdentityProviderPort):
    """Identity fixed at construction (tests, UI sessions)."""

    def __init__(self, account_id: str) -> None:
        self._account_id = account_id

    def current_account_id(self) -> str:
        return self._account_id


class EnvIdentityProvider(IdentityProviderPort):
    """Identity read from the ``AURUM_ACCOUNT_ID`` environment variable."""

    def __init__(self, variable: str = "AURUM_ACCOUNT_ID") -> None:
        self._variable = variable

    def current_account_id(self) -> str:
        """Return the configured account id.

        Raises:
            RuntimeError: If the variable is missing or empty.
        """
        value = os.getenv(self._variable, "").strip()
        if not value:
            raise RuntimeError(f"Missing environment variable: {self._variable}")
        return value


__all__ = ["StaticIdentityProvider", "EnvIdentityProvider"]
