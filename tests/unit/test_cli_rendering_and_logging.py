"""Unit tests for CLI rendering helpers and structured run logging."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
import typer

from md2audio.cache.voice_cache import CacheInfo
from md2audio.cli_rendering import (
    echo_batch_summary,
    echo_cache_info,
    echo_voice_list,
    exit_with_command_error,
    format_cache_age,
    truncate_description,
)
from md2audio.errors import CommandStageError
from md2audio.models.datatypes import BatchSummary, FileResult, SectionResult, Voice
from md2audio.telemetry.logger import RunLogger


def test_exit_with_command_error_prints_stage_and_hint(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Stage errors should print stage, detail, and hint before exiting with code 1."""

    error = CommandStageError(
        stage="provider",
        detail="elevenlabs: ElevenLabs API key not found.",
        hint="Set `ELEVENLABS_API_KEY`.",
    )

    with pytest.raises(typer.Exit) as exc_info:
        exit_with_command_error("generate", error)

    captured = capsys.readouterr()
    assert exc_info.value.exit_code == 1
    assert "generate failed at stage `provider`" in captured.err
    assert "Hint: Set `ELEVENLABS_API_KEY`." in captured.err


def test_exit_with_command_error_prints_plain_failures(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Other exceptions should print their message."""

    with pytest.raises(typer.Exit):
        exit_with_command_error("voices", RuntimeError("socket closed"))

    assert "voices failed: socket closed" in capsys.readouterr().err


@pytest.mark.parametrize(
    ("age_seconds", "expected"),
    [(5, "just now"), (150, "2 minutes"), (7200, "2 hours"), (3 * 86400 + 10, "3 days")],
)
def test_format_cache_age(age_seconds: float, expected: str) -> None:
    """Cache ages should be shown in the coarsest useful unit."""

    assert format_cache_age(age_seconds) == expected


def test_voice_list_uses_table_for_remote_providers(capsys: pytest.CaptureFixture[str]) -> None:
    """Remote providers should list ids with truncated descriptions."""

    long_description = "A warm narrator voice with a gentle cadence for audiobooks"
    echo_voice_list(
        "elevenlabs",
        [Voice(id="21m00Tcm4TlvDq8ikWAM", name="Rachel", description=long_description)],
    )

    output = capsys.readouterr().out
    assert "Available voices for elevenlabs provider:" in output
    assert "21m00Tcm4TlvDq8ikWAM" in output
    assert truncate_description(long_description) in output
    assert len(truncate_description(long_description)) == 40
    assert truncate_description(long_description).endswith("...")


def test_voice_list_uses_rows_for_local_providers(capsys: pytest.CaptureFixture[str]) -> None:
    """Local providers should list name, language, and description."""

    echo_voice_list("say", [Voice(id="Kate", name="Kate", description="Hi", language="en_GB")])

    output = capsys.readouterr().out
    assert "Kate" in output
    assert "en_GB" in output
    assert "- Hi" in output
    assert "ID" not in output


def test_echo_cache_info_reports_freshness(capsys: pytest.CaptureFixture[str]) -> None:
    """Cache info should report count, age, and expiry state."""

    echo_cache_info(CacheInfo(provider="google", count=0), 3600)
    echo_cache_info(CacheInfo(provider="say", count=3, oldest_entry=0, newest_entry=0), 3600)

    output = capsys.readouterr().out
    assert "Voice cache for google provider: empty" in output
    assert "Voice cache for say provider: 3 voices" in output
    assert "expired" in output


def test_echo_batch_summary_reports_counts_and_failures(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Summaries should print generated counts plus skipped files and failed sections."""

    summary = BatchSummary(
        files=[
            FileResult(
                source=Path("a.md"),
                output_dir=Path("out/a"),
                sections=[
                    SectionResult(index=1, title="One", output_path=Path("out/a/1.wav")),
                    SectionResult(index=2, title="Two", output_path=None, error="HTTP 401"),
                ],
            ),
            FileResult(source=Path("b.md"), output_dir=Path("out/b"), error="bad utf-8"),
        ]
    )

    echo_batch_summary(summary)

    captured = capsys.readouterr()
    assert "Generated 1/2 audio file(s) from 2 markdown file(s)." in captured.out
    assert "Skipped b.md: bad utf-8" in captured.err
    assert "Section 2 (Two) failed: HTTP 401" in captured.err


def test_run_logger_emits_sorted_sanitized_context() -> None:
    """Run log lines should be deterministic and free of line breaks."""

    sink = io.StringIO()
    run_logger = RunLogger(sink=sink)

    run_logger.log_stage_start("parse", file="intro notes.md", count=2)
    run_logger.log_stage_failure("section", "RemoteRequestError", index=3)

    lines = sink.getvalue().splitlines()
    assert lines[0] == "[phase] level=INFO stage=parse event=start count=2 file=intro_notes.md"
    assert lines[1] == (
        "[phase] level=ERROR stage=section event=failure error_type=RemoteRequestError index=3"
    )
