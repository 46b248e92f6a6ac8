"""macOS `say` synthesizer backend.

Responsibilities:
- Render speech to AIFF with the built-in `say` command.
- Convert to AAC/M4A with `afconvert` when requested.
- Parse the `say -v ?` voice listing.
"""

from __future__ import annotations

from pathlib import Path
import platform
import re

from loguru import logger

from ..errors import ProviderSetupError
from ..models.datatypes import ControlRange, GenerateRequest, Voice
from ..runtime_context import RunContext
from ..runtime_tools import is_executable_available, resolve_executable
from . import audio_tools
from .duration import SAY_RATE_RANGE
from .provider import prepare_output_path, speakable_text


_VOICE_LINE_PATTERN = re.compile(
    r"^([^\s]+(?:\s+\([^)]+\))?)\s+([a-z]{2}_[A-Z]{2})\s+#\s+(.+)$"
)
_CONVERTED_FORMATS = frozenset({"m4a", "mp4"})


class SayProvider:
    """TTS provider backed by the macOS `say` command."""

    def __init__(self) -> None:
        """Verify the platform and the `say` command before first use."""

        if platform.system() != "Darwin":
            raise ProviderSetupError("say", "The say provider is only available on macOS.")
        if not is_executable_available("say"):
            raise ProviderSetupError("say", "The `say` command was not found on PATH.")

    @property
    def name(self) -> str:
        """Return the provider identifier."""

        return "say"

    @property
    def tempo_control(self) -> ControlRange:
        """Return the `say -r` words-per-minute range."""

        return SAY_RATE_RANGE

    def output_extension(self, audio_format: str) -> str:
        """Return `m4a` for AAC containers and `aiff` otherwise."""

        return "m4a" if audio_format.lower() in _CONVERTED_FORMATS else "aiff"

    def generate(self, request: GenerateRequest, context: RunContext | None = None) -> Path:
        """Render an AIFF clip and optionally convert it to M4A."""

        text = speakable_text(request)
        rate = request.rate if request.rate is not None else int(SAY_RATE_RANGE.default)
        aiff_path = prepare_output_path(request.output_path, "aiff")

        logger.debug("say: generating {} at {} wpm", aiff_path, rate)
        audio_tools.run_command(
            [
                resolve_executable("say"),
                "-v",
                request.voice_id,
                "-r",
                str(rate),
                "-o",
                str(aiff_path),
                text,
            ],
            context,
        )

        if request.format.lower() in _CONVERTED_FORMATS:
            m4a_path = aiff_path.with_suffix(".m4a")
            return audio_tools.convert_with_afconvert(aiff_path, m4a_path, context)
        return aiff_path

    def list_voices(self, context: RunContext | None = None) -> list[Voice]:
        """Return voices reported by `say -v ?`."""

        output = audio_tools.run_command([resolve_executable("say"), "-v", "?"], context)
        return parse_say_voices(output)


def parse_say_voices(output: str) -> list[Voice]:
    """Parse `say -v ?` output rows like `Kate  en_GB  # Hello, my name is Kate.`."""

    voices: list[Voice] = []
    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        match = _VOICE_LINE_PATTERN.match(line)
        if match is None:
            continue
        name, language, description = match.groups()
        voices.append(Voice(id=name, name=name, description=description, language=language))
    return voices
