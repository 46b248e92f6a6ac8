"""Command-line interface for md2audio.

Responsibilities:
- Expose user-facing commands for section narration, voice listing, voice
  cache maintenance, and credential storage.
- Convert CLI arguments into `Md2AudioConfig` and run the processor.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
import signal
from typing import Annotated, Iterator

import typer

from .cache.cached_provider import CachedProvider
from .cache.voice_cache import VoiceCache
from .cli_rendering import (
    echo_batch_summary,
    echo_cache_info,
    echo_config_rows,
    echo_voice_list,
    exit_with_command_error,
)
from .cli_runtime import create_command_provider, load_command_config, resolve_api_key_sources
from .config import API_KEY_ENV_VARS, SUPPORTED_PROVIDERS
from .credentials import create_credential_store
from .errors import CommandStageError
from .parsing import normalize_optional_string
from .processor import MarkdownProcessor
from .runtime_context import RunContext
from .telemetry.logger import RunLogger

app = typer.Typer(
    name="md2audio",
    no_args_is_help=True,
    help="Narrate markdown `##` sections into audio clips.",
)
cache_app = typer.Typer(no_args_is_help=True, help="Inspect or clear the voice cache.")
app.add_typer(cache_app, name="cache")


@contextmanager
def _cancel_on_interrupt(context: RunContext) -> Iterator[None]:
    """Route Ctrl-C into `context.cancel()` so running subprocesses are stopped."""

    def _handler(_signum: int, _frame: object) -> None:
        typer.secho("Interrupted; stopping after the current step.", err=True)
        context.cancel()

    try:
        previous = signal.signal(signal.SIGINT, _handler)
    except ValueError:
        # Not on the main thread.
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _require_remote_provider(command_name: str, provider: str) -> None:
    """Reject providers without an API key for credential commands."""

    if provider not in API_KEY_ENV_VARS:
        supported = ", ".join(sorted(API_KEY_ENV_VARS))
        exit_with_command_error(
            command_name,
            CommandStageError(
                stage="credentials",
                detail=f"Provider `{provider}` does not use an API key.",
                hint=f"Use one of: {supported}.",
            ),
        )


@app.command("generate")
def generate_command(
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Markdown file to narrate."),
    ] = None,
    directory: Annotated[
        Path | None,
        typer.Option("--dir", "-d", help="Directory of markdown files (searched recursively)."),
    ] = None,
    out: Annotated[
        Path | None,
        typer.Option("--out", "-o", help="Output directory (default `./audio_sections`)."),
    ] = None,
    provider: Annotated[
        str | None,
        typer.Option("--provider", help="TTS provider: say, espeak, elevenlabs, or google."),
    ] = None,
    voice: Annotated[
        str | None,
        typer.Option("--voice", "-v", help="Voice name or id; overrides `--preset`."),
    ] = None,
    preset: Annotated[
        str | None,
        typer.Option("--preset", "-p", help="Voice preset, for example `british-female`."),
    ] = None,
    rate: Annotated[
        int | None,
        typer.Option("--rate", "-r", help="Speaking rate in wpm for untimed sections."),
    ] = None,
    audio_format: Annotated[
        str | None,
        typer.Option("--format", help="Output format: aiff, m4a, mp4, mp3, wav, or ogg."),
    ] = None,
    prefix: Annotated[
        str | None,
        typer.Option("--prefix", help="Clip filename prefix."),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", help="Model id override for remote providers."),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option(
            "--api-key",
            help="Provider API key override. Prefer `--prompt-api-key` to avoid shell history.",
        ),
    ] = None,
    prompt_api_key: Annotated[
        bool,
        typer.Option(
            "--prompt-api-key",
            help="Prompt for API key with hidden input (never echoed).",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show planned clips without synthesizing audio."),
    ] = False,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", help="Abort the run after this many seconds."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with command defaults."),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show debug-level log output."),
    ] = False,
) -> None:
    """Generate one audio clip per `##` section of markdown input."""

    if (file is None) == (directory is None):
        exit_with_command_error(
            "generate",
            CommandStageError(
                stage="input",
                detail="Exactly one of `--file` or `--dir` is required.",
                hint="Run `md2audio generate --file notes.md` or `--dir docs/`.",
            ),
        )

    context = RunContext.with_timeout(timeout) if timeout is not None else RunContext()
    try:
        run_logger = RunLogger(debug=debug)
        config = load_command_config(
            config_file,
            {
                "output_dir": out,
                "provider": provider.lower() if provider is not None else None,
                "voice": normalize_optional_string(voice),
                "preset": normalize_optional_string(preset),
                "rate": rate,
                "audio_format": audio_format.lower() if audio_format is not None else None,
                "prefix": normalize_optional_string(prefix),
                "model_id": normalize_optional_string(model),
                "dry_run": True if dry_run else None,
            },
        )
        sources = resolve_api_key_sources(
            config.provider,
            api_key,
            prompt_api_key,
            credential_store_factory=create_credential_store,
        )
        resolved_api_key = config.resolved_api_key(sources)
        tts_provider = create_command_provider(config, resolved_api_key)
        echo_config_rows(config.describe(resolved_api_key))

        processor = MarkdownProcessor(config, tts_provider, run_logger=run_logger, context=context)
        with _cancel_on_interrupt(context):
            if directory is not None:
                summary = processor.process_directory(directory)
            else:
                summary = processor.process_single(file)
    except Exception as exc:
        exit_with_command_error("generate", exc)

    echo_batch_summary(summary)


@app.command("voices")
def voices_command(
    provider: Annotated[
        str | None,
        typer.Option("--provider", help="TTS provider whose voices to list."),
    ] = None,
    refresh: Annotated[
        bool,
        typer.Option("--refresh", help="Bypass the voice cache and fetch fresh voices."),
    ] = False,
    export: Annotated[
        Path | None,
        typer.Option("--export", help="Write the cached voice list to a JSON file."),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option("--api-key", help="Provider API key override."),
    ] = None,
    cache_path: Annotated[
        Path | None,
        typer.Option("--cache-path", help="Voice cache database path."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with command defaults."),
    ] = None,
) -> None:
    """List voices available for a provider, served from the voice cache when fresh."""

    try:
        config = load_command_config(
            config_file,
            {
                "provider": provider.lower() if provider is not None else None,
                "cache_path": cache_path,
            },
        )
        sources = resolve_api_key_sources(
            config.provider,
            api_key,
            False,
            credential_store_factory=create_credential_store,
        )
        tts_provider = create_command_provider(config, config.resolved_api_key(sources))
        with VoiceCache(config.cache_path, ttl_seconds=config.cache_ttl_seconds) as cache:
            cached_provider = CachedProvider(tts_provider, cache)
            info = cached_provider.get_cache_info()
            if info.count and not refresh:
                echo_cache_info(info, config.cache_ttl_seconds)

            if export is not None:
                cached_provider.list_voices()
                exported = cached_provider.export_voices_to_json(export)
                typer.echo(f"Exported {exported} voice(s) to {export}")
                return

            if refresh:
                voices = cached_provider.list_voices_refresh()
            else:
                voices = cached_provider.list_voices()
    except Exception as exc:
        exit_with_command_error("voices", exc)

    echo_voice_list(config.provider, voices)


@cache_app.command("info")
def cache_info_command(
    provider: Annotated[
        str | None,
        typer.Option("--provider", help="Provider partition to inspect; all when omitted."),
    ] = None,
    cache_path: Annotated[
        Path | None,
        typer.Option("--cache-path", help="Voice cache database path."),
    ] = None,
) -> None:
    """Show cached voice counts and ages."""

    providers = [provider.lower()] if provider is not None else sorted(SUPPORTED_PROVIDERS)
    try:
        config = load_command_config(None, {"cache_path": cache_path})
        with VoiceCache(config.cache_path, ttl_seconds=config.cache_ttl_seconds) as cache:
            typer.echo(f"Voice cache: {cache.path}")
            for provider_id in providers:
                echo_cache_info(cache.get_cache_info(provider_id), config.cache_ttl_seconds)
    except Exception as exc:
        exit_with_command_error("cache info", exc)


@cache_app.command("clear")
def cache_clear_command(
    provider: Annotated[
        str | None,
        typer.Option("--provider", help="Provider partition to clear."),
    ] = None,
    clear_all: Annotated[
        bool,
        typer.Option("--all", help="Clear cached voices for every provider."),
    ] = False,
    cache_path: Annotated[
        Path | None,
        typer.Option("--cache-path", help="Voice cache database path."),
    ] = None,
) -> None:
    """Delete cached voices for one provider or all providers."""

    if (provider is None) == (not clear_all):
        exit_with_command_error(
            "cache clear",
            CommandStageError(
                stage="cache",
                detail="Pass exactly one of `--provider` or `--all`.",
                hint="Run `md2audio cache clear --provider elevenlabs` or `--all`.",
            ),
        )

    try:
        config = load_command_config(None, {"cache_path": cache_path})
        with VoiceCache(config.cache_path, ttl_seconds=config.cache_ttl_seconds) as cache:
            if clear_all:
                cache.clear_all()
                typer.echo("Cleared cached voices for all providers.")
            else:
                cache.clear(provider.lower())
                typer.echo(f"Cleared cached voices for {provider.lower()} provider.")
    except Exception as exc:
        exit_with_command_error("cache clear", exc)


@app.command("credentials")
def credentials_command(
    provider: Annotated[
        str,
        typer.Option("--provider", help="Remote provider: elevenlabs or google."),
    ] = "elevenlabs",
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Clear stored API key from secure credential storage.",
        ),
    ] = False,
) -> None:
    """Manage securely stored provider API keys."""

    provider_id = provider.lower()
    _require_remote_provider("credentials", provider_id)
    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            CommandStageError(
                stage="credentials",
                detail="`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    credential_store = create_credential_store(provider_id)
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                f"{provider_id} API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                CommandStageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            credential_store.set_api_key(prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                CommandStageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo(f"{provider_id} API key stored in secure credential storage.")
        return

    if clear_api_key:
        if credential_store.clear_api_key():
            typer.echo(f"Stored {provider_id} API key cleared from secure credential storage.")
        else:
            typer.echo(f"No stored {provider_id} API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    status = "present" if credential_store.get_api_key() is not None else "not set"
    typer.echo(f"Secure credential storage: {availability}")
    typer.echo(f"Stored {provider_id} API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
