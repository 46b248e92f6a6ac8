"""Local audio command helpers used by command-line synthesizers.

Responsibilities:
- Run external commands with captured output and cooperative cancellation.
- Convert intermediate audio with `afconvert` (macOS) or `ffmpeg`.
- Measure produced clip durations from `afinfo` output or WAV headers.
"""

from __future__ import annotations

from pathlib import Path
import platform
import re
import subprocess
from time import monotonic
import wave

from ..errors import SynthesisError, SynthesisInputError
from ..runtime_context import RunContext
from ..runtime_tools import resolve_executable


DEFAULT_COMMAND_TIMEOUT_SECONDS = 300.0
_POLL_INTERVAL_SECONDS = 0.2
_AFINFO_DURATION_PATTERN = re.compile(r"estimated duration:\s+([\d.]+)\s+sec")

_FFMPEG_CODECS = {
    "mp3": "libmp3lame",
    "m4a": "aac",
    "mp4": "aac",
    "aiff": "pcm_s16be",
}


def run_command(
    args: list[str],
    context: RunContext | None = None,
    *,
    timeout_seconds: float = DEFAULT_COMMAND_TIMEOUT_SECONDS,
) -> str:
    """Run a command and return its combined stdout/stderr text.

    The process is killed when the context is cancelled, the context deadline
    passes, or `timeout_seconds` elapses.

    Raises:
        SynthesisError: If the command is missing, times out, or exits non-zero.
        OperationCancelled: If the context stops the command.
    """

    run_context = context if context is not None else RunContext()
    run_context.raise_if_cancelled()
    command_name = Path(args[0]).name
    try:
        process = subprocess.Popen(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        raise SynthesisError(f"Failed to start `{command_name}`: {exc}") from exc

    started_at = monotonic()
    while True:
        try:
            output, _ = process.communicate(timeout=_POLL_INTERVAL_SECONDS)
            break
        except subprocess.TimeoutExpired:
            if run_context.expired():
                process.kill()
                process.communicate()
                run_context.raise_if_cancelled()
            if monotonic() - started_at > timeout_seconds:
                process.kill()
                process.communicate()
                raise SynthesisError(
                    f"`{command_name}` timed out after {timeout_seconds:.0f}s."
                ) from None

    if process.returncode != 0:
        detail = (output or "").strip() or f"exit code {process.returncode}"
        raise SynthesisError(f"`{command_name}` failed: {detail}")
    return output or ""


def convert_with_afconvert(
    source: Path,
    destination: Path,
    context: RunContext | None = None,
) -> Path:
    """Convert an AIFF file to AAC in an MPEG-4 container and remove the source."""

    run_command(
        [
            resolve_executable("afconvert"),
            "-f",
            "mp4f",
            "-d",
            "aac",
            str(source),
            str(destination),
        ],
        context,
    )
    source.unlink(missing_ok=True)
    return destination


def convert_with_ffmpeg(
    source: Path,
    destination: Path,
    audio_format: str,
    context: RunContext | None = None,
) -> Path:
    """Transcode `source` into `audio_format` with ffmpeg and remove the source."""

    codec = _FFMPEG_CODECS.get(audio_format)
    if codec is None:
        supported = ", ".join(sorted(_FFMPEG_CODECS))
        raise SynthesisInputError(
            f"Unsupported conversion format `{audio_format}`; supported: {supported}."
        )
    run_command(
        [
            resolve_executable("ffmpeg"),
            "-y",
            "-loglevel",
            "error",
            "-i",
            str(source),
            "-c:a",
            codec,
            str(destination),
        ],
        context,
    )
    source.unlink(missing_ok=True)
    return destination


def parse_afinfo_duration(output: str) -> float | None:
    """Extract the estimated duration in seconds from `afinfo` output."""

    match = _AFINFO_DURATION_PATTERN.search(output)
    if match is None:
        return None
    try:
        return float(match.group(1))
    except ValueError:
        return None


def wav_duration_seconds(path: Path) -> float | None:
    """Return the duration of a WAV file, or `None` when the header is unreadable."""

    try:
        with wave.open(str(path), "rb") as wav_file:
            frame_count = wav_file.getnframes()
            sample_rate = wav_file.getframerate()
    except (OSError, EOFError, wave.Error):
        return None
    if sample_rate <= 0:
        return None
    return frame_count / float(sample_rate)


def measure_duration(path: Path, context: RunContext | None = None) -> float | None:
    """Measure a clip's duration when the platform and container allow it."""

    suffix = path.suffix.lower()
    if suffix == ".wav":
        return wav_duration_seconds(path)
    if platform.system() != "Darwin" or suffix not in {".aiff", ".m4a", ".mp4", ".mp3"}:
        return None
    try:
        output = run_command([resolve_executable("afinfo"), str(path)], context)
    except SynthesisError:
        return None
    return parse_afinfo_duration(output)
