"""Per-section audio generation.

Responsibilities:
- Resolve clip filenames from the provider extension hook.
- Fit speaking rate for timed sections on rate-controlled backends.
- Pass the target duration through so speed-controlled backends fit themselves.
- Report actual vs. target duration when the output can be measured.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from ..models.datatypes import GenerateRequest, Section, SectionResult
from ..runtime_context import RunContext
from ..text.slug import section_filename
from ..tts import audio_tools
from ..tts.duration import fit_speaking_rate
from ..tts.provider import TTSProvider


@dataclass(frozen=True, slots=True)
class GeneratorConfig:
    """Settings shared by every section of one file.

    Attributes:
        provider: Provider used for synthesis.
        voice: Provider-specific voice identifier.
        output_dir: Directory receiving the clips.
        rate: Speaking rate for untimed sections of rate-controlled backends.
        audio_format: Requested output format.
        prefix: Filename prefix.
        model_id: Optional model identifier for remote backends.
    """

    provider: TTSProvider
    voice: str
    output_dir: Path
    rate: int = 180
    audio_format: str = "aiff"
    prefix: str = "section"
    model_id: str | None = None


class AudioGenerator:
    """Generate one audio clip per markdown section."""

    def __init__(self, config: GeneratorConfig) -> None:
        """Store generator settings."""

        self.config = config

    def planned_path(self, section: Section, index: int) -> Path:
        """Return the path a section's clip will be written to."""

        extension = self.config.provider.output_extension(self.config.audio_format)
        filename = section_filename(self.config.prefix, index, section.title, extension)
        return self.config.output_dir / filename

    def build_request(self, section: Section, index: int) -> GenerateRequest:
        """Build the synthesis request, fitting rate when the section is timed.

        Only words-per-minute backends get a fitted `rate`; speed-multiplier
        backends receive `target_duration` and fit their own speed.
        """

        rate = self.config.rate
        target_duration: float | None = None
        if section.has_timing:
            target_duration = section.duration
            control = self.config.provider.tempo_control
            if control.is_words_per_minute:
                rate = int(fit_speaking_rate(section.content, section.duration, control).value)
                logger.info(
                    "Target duration: {:.1f}s, calculated rate: {} wpm",
                    section.duration,
                    rate,
                )

        return GenerateRequest(
            text=section.content,
            voice_id=self.config.voice,
            output_path=self.planned_path(section, index),
            format=self.config.audio_format,
            rate=rate,
            model_id=self.config.model_id,
            target_duration=target_duration,
        )

    def generate(
        self,
        section: Section,
        index: int,
        context: RunContext | None = None,
    ) -> SectionResult:
        """Synthesize one section and return its result record."""

        request = self.build_request(section, index)
        final_path = self.config.provider.generate(request, context)
        logger.info("Created: {}", final_path)

        actual_duration: float | None = None
        if section.has_timing:
            actual_duration = audio_tools.measure_duration(final_path, context)
            if actual_duration is not None:
                logger.info(
                    "Actual duration: {:.2f}s (target: {:.1f}s, diff: {:+.2f}s)",
                    actual_duration,
                    section.duration,
                    actual_duration - section.duration,
                )

        return SectionResult(
            index=index,
            title=section.title,
            output_path=final_path,
            target_duration=request.target_duration,
            actual_duration=actual_duration,
        )
