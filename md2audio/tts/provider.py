"""TTS provider protocol and shared request helpers.

Responsibilities:
- Define the contract every synthesis backend satisfies.
- Share the small request-preparation steps all backends perform.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from ..errors import SynthesisInputError
from ..models.datatypes import ControlRange, GenerateRequest, Voice
from ..runtime_context import RunContext
from ..text.markdown import clean_markdown


class TTSProvider(Protocol):
    """Protocol for text-to-speech backends."""

    @property
    def name(self) -> str:
        """Return the stable lowercase provider identifier."""

    @property
    def tempo_control(self) -> ControlRange:
        """Return the tempo control the backend accepts, rate (`wpm`) or speed (`x`)."""

    def output_extension(self, audio_format: str) -> str:
        """Return the file extension `generate` writes for `audio_format`."""

    def generate(self, request: GenerateRequest, context: RunContext | None = None) -> Path:
        """Synthesize `request.text` and return the path actually written."""

    def list_voices(self, context: RunContext | None = None) -> list[Voice]:
        """Return voices offered by the backend in a stable order."""


def speakable_text(request: GenerateRequest) -> str:
    """Return request text cleaned for speech, raising when nothing remains."""

    text = clean_markdown(request.text)
    if not text:
        raise SynthesisInputError("Text is empty after removing markdown formatting.")
    return text


def prepare_output_path(output_path: Path, extension: str) -> Path:
    """Return `output_path` with `extension`, creating its parent directory."""

    resolved = output_path.with_suffix(f".{extension}")
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return resolved
