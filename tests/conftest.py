"""Shared pytest fixtures for the md2audio test suite."""

from __future__ import annotations

from pathlib import Path
import sys
import wave

from loguru import logger
import pytest

from md2audio.models.datatypes import ControlRange, GenerateRequest, Voice
from md2audio.tts.duration import ESPEAK_RATE_RANGE


class FakeWavProvider:
    """Provider double that writes short silent WAV clips and records requests."""

    def __init__(
        self,
        name: str = "espeak",
        seconds: float = 1.0,
        fail_on: str | None = None,
        tempo_control: ControlRange = ESPEAK_RATE_RANGE,
    ) -> None:
        """Configure provider name, clip length, tempo control, and a failing text marker."""

        self._name = name
        self._tempo_control = tempo_control
        self.seconds = seconds
        self.fail_on = fail_on
        self.requests: list[GenerateRequest] = []
        self.voices = [Voice(id="en-us", name="en-us", language="en-us")]

    @property
    def name(self) -> str:
        """Return the configured provider identifier."""

        return self._name

    @property
    def tempo_control(self) -> ControlRange:
        """Return the configured tempo control."""

        return self._tempo_control

    def output_extension(self, audio_format: str) -> str:
        """Return the requested format, or `wav` when none is given."""

        return audio_format.lower() or "wav"

    def generate(self, request: GenerateRequest, context: object = None) -> Path:
        """Write a silent WAV clip, or fail when the text contains `fail_on`."""

        self.requests.append(request)
        if self.fail_on is not None and self.fail_on in request.text:
            raise RuntimeError(f"synthesis failed for {self.fail_on}")
        output_path = request.output_path.with_suffix(".wav")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        sample_rate = 8000
        with wave.open(str(output_path), "wb") as wav_file:
            wav_file.setnchannels(1)
            wav_file.setsampwidth(2)
            wav_file.setframerate(sample_rate)
            wav_file.writeframes(b"\x00\x00" * int(sample_rate * self.seconds))
        return output_path

    def list_voices(self, context: object = None) -> list[Voice]:
        """Return the configured voices."""

        return list(self.voices)


@pytest.fixture
def fake_wav_provider() -> FakeWavProvider:
    """Provide a deterministic WAV-writing provider double."""

    return FakeWavProvider()


@pytest.fixture
def wav_provider_factory() -> type[FakeWavProvider]:
    """Provide the WAV provider double class for tests needing custom settings."""

    return FakeWavProvider


@pytest.fixture(autouse=True)
def _restore_loguru_sink():
    """Reset loguru to a stderr sink after tests that reconfigure it."""

    yield
    logger.remove()
    logger.add(sys.stderr, level="INFO")
