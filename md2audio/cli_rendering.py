"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
voice listings, cache status, effective configuration, and run summaries.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .cache.voice_cache import CacheInfo
from .errors import CommandStageError
from .models.datatypes import BatchSummary, Voice


_TABLE_PROVIDERS = frozenset({"elevenlabs", "google"})
_MAX_DESCRIPTION_CHARS = 40


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, CommandStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def format_cache_age(age_seconds: float) -> str:
    """Return a coarse human-readable age like `just now` or `3 hours`."""

    if age_seconds < 60:
        return "just now"
    if age_seconds < 60 * 60:
        return f"{int(age_seconds // 60)} minutes"
    if age_seconds < 24 * 60 * 60:
        return f"{int(age_seconds // 3600)} hours"
    return f"{int(age_seconds // 86400)} days"


def truncate_description(description: str) -> str:
    """Cap voice descriptions at 40 characters for table display."""

    if len(description) <= _MAX_DESCRIPTION_CHARS:
        return description
    return f"{description[: _MAX_DESCRIPTION_CHARS - 3]}..."


def echo_voice_list(provider_name: str, voices: list[Voice]) -> None:
    """Print voices as an ID table for remote providers or simple rows for local ones."""

    typer.echo(f"Available voices for {provider_name} provider:")
    typer.echo("")
    if provider_name in _TABLE_PROVIDERS:
        typer.echo(f"{'ID':<40} {'Name':<20} {'Language':<10} Description")
        typer.echo("-" * 100)
        for voice in voices:
            typer.echo(
                f"{voice.id:<40} {voice.name:<20} {voice.language:<10} "
                f"{truncate_description(voice.description)}"
            )
        return

    for voice in voices:
        line = f"{voice.name:<20} {voice.language:<10}"
        if voice.description:
            line += f" - {voice.description}"
        typer.echo(line)


def echo_cache_info(info: CacheInfo, ttl_seconds: float) -> None:
    """Print voice cache statistics for one provider."""

    if info.count == 0:
        typer.echo(f"Voice cache for {info.provider} provider: empty")
        return
    age = info.age_seconds()
    age_label = format_cache_age(age) if age is not None else "unknown"
    if age_label not in {"just now", "unknown"}:
        age_label = f"{age_label} ago"
    status = "expired" if info.is_expired(ttl_seconds) else "fresh"
    typer.echo(
        f"Voice cache for {info.provider} provider: {info.count} voices "
        f"(cached {age_label}, {status})"
    )


def echo_config_rows(rows: list[tuple[str, str]]) -> None:
    """Print effective configuration rows."""

    for label, value in rows:
        typer.echo(f"{label + ':':<10} {value}")


def echo_batch_summary(summary: BatchSummary) -> None:
    """Print generated-vs-attempted counts and any failed files."""

    file_count = len(summary.files)
    if summary.dry_run:
        typer.echo(
            f"Dry run: would generate {summary.attempted_sections} audio file(s) "
            f"from {file_count} markdown file(s)."
        )
    else:
        typer.echo(
            f"Generated {summary.generated_sections}/{summary.attempted_sections} audio file(s) "
            f"from {file_count} markdown file(s)."
        )
    for failed in summary.failed_files:
        typer.secho(f"Skipped {failed.source}: {failed.error}", fg=typer.colors.YELLOW, err=True)
    for file_result in summary.files:
        for section in file_result.sections:
            if section.error is not None:
                typer.secho(
                    f"Section {section.index} ({section.title}) failed: {section.error}",
                    fg=typer.colors.YELLOW,
                    err=True,
                )
