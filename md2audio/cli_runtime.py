"""CLI runtime resolution helpers.

This module isolates config loading, CLI override application, API-key
source assembly, and provider construction from the command wiring layer.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Mapping, Protocol

from keyring.errors import KeyringError
from loguru import logger
import typer

from .config import (
    API_KEY_ENV_VARS,
    ConfigLoader,
    Md2AudioConfig,
    RuntimeConfigSources,
    load_dotenv_file,
)
from .credentials import create_credential_store
from .errors import CommandStageError, ProviderSetupError
from .parsing import normalize_optional_string
from .provider_factory import ProviderFactory
from .tts.provider import TTSProvider


class CredentialStoreProtocol(Protocol):
    """Protocol for secure credential store operations used by CLI runtime resolution."""

    def get_api_key(self) -> str | None:
        """Return currently stored API key, if available."""


def load_command_config(
    config_path: Path | None,
    overrides: Mapping[str, object] | None = None,
    env: Mapping[str, str] | None = None,
) -> Md2AudioConfig:
    """Load `.env`, environment, and YAML settings, then apply CLI overrides.

    Precedence is CLI > YAML > environment > defaults. Failures are mapped to
    `config`-stage errors with an actionable hint.
    """

    if env is None:
        load_dotenv_file()
    try:
        config = ConfigLoader.load(config_path, env=env)
    except FileNotFoundError as exc:
        raise CommandStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise CommandStageError(
            stage="config",
            detail=f"Invalid configuration: {exc}",
            hint="Fix config file, environment, or option values and rerun.",
        ) from exc

    for field_name, value in (overrides or {}).items():
        if value is not None:
            setattr(config, field_name, value)
    try:
        config.validate()
    except ValueError as exc:
        raise CommandStageError(
            stage="config",
            detail=f"Invalid option value: {exc}",
            hint="Run `md2audio --help` to see accepted values.",
        ) from exc
    return config


def resolve_api_key_sources(
    provider: str,
    api_key: str | None,
    prompt_api_key: bool,
    credential_store_factory: Callable[[str], CredentialStoreProtocol] = create_credential_store,
    env: Mapping[str, str] | None = None,
) -> RuntimeConfigSources:
    """Assemble CLI, secure-storage, and environment sources for API-key resolution."""

    env_map: Mapping[str, str] = os.environ if env is None else env
    if provider not in API_KEY_ENV_VARS:
        return RuntimeConfigSources(env=env_map)

    cli_values: dict[str, str] = {}
    explicit_key = normalize_optional_string(api_key)
    if explicit_key is None and prompt_api_key:
        explicit_key = normalize_optional_string(
            typer.prompt(
                f"{provider} API key (hidden; leave blank to skip)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
    if explicit_key is not None:
        cli_values["api_key"] = explicit_key

    secure_values: dict[str, str] = {}
    try:
        stored_api_key = credential_store_factory(provider).get_api_key()
    except KeyringError as exc:
        logger.warning("Secure credential storage unavailable: {}", exc)
        stored_api_key = None
    if stored_api_key is not None:
        secure_values["api_key"] = stored_api_key

    return RuntimeConfigSources(cli=cli_values, secure=secure_values, env=env_map)


def create_command_provider(config: Md2AudioConfig, api_key: str | None) -> TTSProvider:
    """Construct the configured provider, mapping setup failures to stage errors."""

    try:
        return ProviderFactory.create_provider(config, api_key)
    except ProviderSetupError as exc:
        raise CommandStageError(
            stage="provider",
            detail=str(exc),
            hint=_provider_setup_hint(config.provider),
        ) from exc


def _provider_setup_hint(provider: str) -> str:
    """Return a setup hint for a provider that failed to initialize."""

    if provider == "say":
        return "The say provider needs macOS; use `--provider espeak` on Linux."
    if provider == "espeak":
        return "Install espeak-ng (`sudo apt install espeak-ng`) or pick another provider."
    env_key = API_KEY_ENV_VARS.get(provider, "the provider API key")
    return (
        f"Set `{env_key}`, pass `--api-key`, or run "
        f"`md2audio credentials --provider {provider} --set-api-key`."
    )
