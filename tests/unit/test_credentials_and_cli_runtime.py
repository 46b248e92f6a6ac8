"""Unit tests for keyring-backed credentials and CLI runtime source resolution."""

from __future__ import annotations

from pathlib import Path

from keyring.errors import KeyringError
import pytest

from md2audio.cli_runtime import (
    create_command_provider,
    load_command_config,
    resolve_api_key_sources,
)
from md2audio.config import Md2AudioConfig
from md2audio.credentials import KeyringCredentialStore, account_name_for, create_credential_store
from md2audio.errors import CommandStageError


class FakeKeyringModule:
    """In-memory keyring stand-in for credential store tests."""

    def __init__(self) -> None:
        """Initialize empty per-service storage."""

        self._storage: dict[tuple[str, str], str] = {}

    def get_keyring(self) -> object:
        """Return a backend object that is not the fail backend."""

        return object()

    def get_password(self, service_name: str, account_name: str) -> str | None:
        """Return a stored password if present."""

        return self._storage.get((service_name, account_name))

    def set_password(self, service_name: str, account_name: str, value: str) -> None:
        """Store a password for the service/account pair."""

        self._storage[(service_name, account_name)] = value

    def delete_password(self, service_name: str, account_name: str) -> None:
        """Delete a password for the service/account pair."""

        self._storage.pop((service_name, account_name), None)


class _StaticStore:
    """Credential store double returning a fixed key or raising a keyring error."""

    def __init__(self, api_key: str | None = None, error: Exception | None = None) -> None:
        """Store the canned key or error."""

        self.api_key = api_key
        self.error = error

    def get_api_key(self) -> str | None:
        """Return the canned key or raise the canned error."""

        if self.error is not None:
            raise self.error
        return self.api_key


def test_keyring_store_keeps_one_account_per_provider(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keys for different providers should not overwrite each other."""

    fake_keyring = FakeKeyringModule()
    elevenlabs_store = create_credential_store("elevenlabs")
    google_store = create_credential_store("google")
    for store in (elevenlabs_store, google_store):
        monkeypatch.setattr(store, "_load_keyring_module", lambda: fake_keyring)

    elevenlabs_store.set_api_key("  el-key  ")
    google_store.set_api_key("g-key")

    assert elevenlabs_store.is_available() is True
    assert elevenlabs_store.get_api_key() == "el-key"
    assert google_store.get_api_key() == "g-key"
    assert account_name_for("google") == "google_api_key"

    assert elevenlabs_store.clear_api_key() is True
    assert elevenlabs_store.clear_api_key() is False
    assert google_store.get_api_key() == "g-key"


def test_keyring_store_rejects_blank_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    """Blank keys should not be written to secure storage."""

    store = KeyringCredentialStore(account_name="elevenlabs_api_key")
    monkeypatch.setattr(store, "_load_keyring_module", lambda: FakeKeyringModule())

    with pytest.raises(ValueError, match="non-empty"):
        store.set_api_key("   ")


def test_resolve_api_key_sources_collects_cli_and_secure_values() -> None:
    """Remote providers should get CLI, secure, and environment sources."""

    sources = resolve_api_key_sources(
        "elevenlabs",
        " cli-key ",
        False,
        credential_store_factory=lambda _provider: _StaticStore("stored-key"),
        env={"ELEVENLABS_API_KEY": "env-key"},
    )

    assert dict(sources.cli) == {"api_key": "cli-key"}
    assert dict(sources.secure) == {"api_key": "stored-key"}
    assert dict(sources.env) == {"ELEVENLABS_API_KEY": "env-key"}


def test_resolve_api_key_sources_prompts_with_hidden_input(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Prompted keys should be requested with hidden input."""

    prompts: list[dict[str, object]] = []

    def _prompt(text: str, **kwargs: object) -> str:
        """Record prompt options and return a key."""

        prompts.append({"text": text, **kwargs})
        return "prompted-key"

    monkeypatch.setattr("md2audio.cli_runtime.typer.prompt", _prompt)

    sources = resolve_api_key_sources(
        "google",
        None,
        True,
        credential_store_factory=lambda _provider: _StaticStore(),
        env={},
    )

    assert dict(sources.cli) == {"api_key": "prompted-key"}
    assert dict(sources.secure) == {}
    assert prompts[0]["hide_input"] is True


def test_resolve_api_key_sources_tolerates_keyring_failures() -> None:
    """A broken keyring backend should fall back to the remaining sources."""

    sources = resolve_api_key_sources(
        "elevenlabs",
        None,
        False,
        credential_store_factory=lambda _provider: _StaticStore(error=KeyringError("locked")),
        env={"ELEVENLABS_API_KEY": "env-key"},
    )

    assert Md2AudioConfig(provider="elevenlabs").resolved_api_key(sources) == "env-key"


def test_resolve_api_key_sources_skips_keyring_for_local_providers() -> None:
    """Local providers should never touch secure storage."""

    def _unexpected_store(_provider: str) -> _StaticStore:
        """Fail if a credential store is requested."""

        raise AssertionError("credential store should not be created")

    sources = resolve_api_key_sources(
        "espeak", "ignored", False, credential_store_factory=_unexpected_store, env={}
    )

    assert dict(sources.cli) == {}


def test_load_command_config_applies_cli_overrides(tmp_path: Path) -> None:
    """CLI overrides should win over YAML and skip `None` values."""

    config_path = tmp_path / "md2audio.yaml"
    config_path.write_text("provider: say\nprefix: part\nrate: 150\n", encoding="utf-8")

    config = load_command_config(
        config_path,
        {"provider": "espeak", "rate": None, "output_dir": tmp_path / "clips"},
        env={},
    )

    assert config.provider == "espeak"
    assert config.prefix == "part"
    assert config.rate == 150
    assert config.output_dir == tmp_path / "clips"


def test_load_command_config_maps_errors_to_config_stage(tmp_path: Path) -> None:
    """Missing files and invalid overrides should become `config` stage errors."""

    with pytest.raises(CommandStageError) as missing:
        load_command_config(tmp_path / "absent.yaml", env={})
    with pytest.raises(CommandStageError) as invalid:
        load_command_config(None, {"audio_format": "flac"}, env={})

    assert missing.value.stage == "config"
    assert "Config file not found" in missing.value.detail
    assert invalid.value.stage == "config"
    assert "Unsupported format" in invalid.value.detail


def test_create_command_provider_maps_setup_errors() -> None:
    """Provider setup failures should carry a provider-specific hint."""

    with pytest.raises(CommandStageError) as exc_info:
        create_command_provider(Md2AudioConfig(provider="google"), None)

    assert exc_info.value.stage == "provider"
    assert "GOOGLE_TTS_API_KEY" in (exc_info.value.hint or "")
