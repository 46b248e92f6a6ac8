"""Secure credential storage helpers for the md2audio CLI.

Responsibilities:
- Persist remote provider API keys in an OS-backed secure credential store.
- Keep one keyring account per provider so keys never collide.
- Avoid logging or exposing secret values in diagnostics.

Key types:
- `CredentialStore`: interface for provider credential persistence.
- `KeyringCredentialStore`: keyring-backed secure credential storage.
"""

from __future__ import annotations

from dataclasses import dataclass

import keyring
from keyring.backends import fail
from keyring.errors import PasswordDeleteError


_DEFAULT_SERVICE_NAME = "md2audio"


def account_name_for(provider: str) -> str:
    """Return the keyring account used for a provider's API key."""

    return f"{provider}_api_key"


class CredentialStore:
    """Interface for secure provider credential operations."""

    def is_available(self) -> bool:
        """Return whether secure credential operations are available."""

        raise NotImplementedError

    def get_api_key(self) -> str | None:
        """Load the stored API key from secure storage, when available."""

        raise NotImplementedError

    def set_api_key(self, api_key: str) -> None:
        """Persist an API key in secure storage."""

        raise NotImplementedError

    def clear_api_key(self) -> bool:
        """Delete a stored API key and return whether one existed."""

        raise NotImplementedError


@dataclass(slots=True)
class KeyringCredentialStore(CredentialStore):
    """Secure credential store backed by the `keyring` package."""

    account_name: str
    service_name: str = _DEFAULT_SERVICE_NAME

    def _load_keyring_module(self):
        """Return the `keyring` module used for storage calls."""

        return keyring

    def is_available(self) -> bool:
        """Return `True` when a real keyring backend is configured."""

        backend = self._load_keyring_module().get_keyring()
        return not isinstance(backend, fail.Keyring)

    def get_api_key(self) -> str | None:
        """Get a normalized API key from keyring, returning `None` when missing."""

        value = self._load_keyring_module().get_password(self.service_name, self.account_name)
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            return None
        return normalized

    def set_api_key(self, api_key: str) -> None:
        """Persist a normalized API key in keyring."""

        normalized = api_key.strip()
        if not normalized:
            raise ValueError("API key must be a non-empty string.")
        self._load_keyring_module().set_password(self.service_name, self.account_name, normalized)

    def clear_api_key(self) -> bool:
        """Remove the stored API key from keyring and report if one was present."""

        if self.get_api_key() is None:
            return False
        try:
            self._load_keyring_module().delete_password(self.service_name, self.account_name)
        except PasswordDeleteError:
            return False
        return True


def create_credential_store(provider: str) -> CredentialStore:
    """Create the default secure credential store for one provider."""

    return KeyringCredentialStore(account_name=account_name_for(provider))
