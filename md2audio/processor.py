"""File and directory processing for markdown narration runs.

Responsibilities:
- Parse markdown inputs and run the audio generator for every section.
- Mirror input directory trees into the output directory.
- Isolate per-section and per-file failures and collect a batch summary.

Key types:
- `MarkdownProcessor`: runs single-file and directory jobs against one provider.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from .audio.generator import AudioGenerator, GeneratorConfig
from .config import Md2AudioConfig
from .errors import OperationCancelled
from .models.datatypes import BatchSummary, FileResult, Section, SectionResult
from .runtime_context import RunContext
from .telemetry.logger import RunLogger
from .text.sections import find_markdown_files, parse_markdown_file
from .tts.provider import TTSProvider


_PREVIEW_CHARS = 100


def preview_text(content: str) -> str:
    """Return the first 100 characters of section content for progress output."""

    if len(content) <= _PREVIEW_CHARS:
        return content
    return f"{content[:_PREVIEW_CHARS]}..."


class MarkdownProcessor:
    """Run section synthesis for markdown files with one configured provider."""

    def __init__(
        self,
        config: Md2AudioConfig,
        provider: TTSProvider,
        run_logger: RunLogger | None = None,
        context: RunContext | None = None,
    ) -> None:
        """Store run settings, the provider, and the logging sink."""

        self.config = config
        self.provider = provider
        self.run_logger = run_logger
        self.context = context if context is not None else RunContext()

    def process_file(self, markdown_path: Path, output_dir: Path | None = None) -> FileResult:
        """Generate clips for every section of one markdown file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file fails markdown input validation.
        """

        target_dir = output_dir if output_dir is not None else self.config.output_dir
        self._log_start("parse", file=markdown_path.name)
        sections = parse_markdown_file(markdown_path)
        result = FileResult(source=markdown_path, output_dir=target_dir)
        if not sections:
            logger.warning("No H2 sections found in {}", markdown_path)
            return result
        logger.info("Found {} section(s) in {}", len(sections), markdown_path)

        generator = AudioGenerator(
            GeneratorConfig(
                provider=self.provider,
                voice=self.config.resolved_voice(),
                output_dir=target_dir,
                rate=self.config.rate,
                audio_format=self.config.audio_format,
                prefix=self.config.prefix,
                model_id=self.config.model_id,
            )
        )
        if not self.config.dry_run:
            target_dir.mkdir(parents=True, exist_ok=True)

        for index, section in enumerate(sections, start=1):
            result.sections.append(self._process_section(generator, section, index, len(sections)))

        self._log_complete(
            "generate",
            file=markdown_path.name,
            generated=result.generated_count,
            sections=len(sections),
        )
        return result

    def process_directory(self, input_dir: Path) -> BatchSummary:
        """Process every markdown file under `input_dir`, mirroring its layout.

        Raises:
            NotADirectoryError: If `input_dir` is not a directory.
            ValueError: If no markdown files are found.
        """

        markdown_files = find_markdown_files(input_dir)
        if not markdown_files:
            raise ValueError(f"No markdown files found in directory: `{input_dir}`.")
        logger.info("Found {} markdown file(s) in {}", len(markdown_files), input_dir)

        summary = BatchSummary(dry_run=self.config.dry_run)
        for position, markdown_file in enumerate(markdown_files, start=1):
            output_dir = markdown_file.output_dir(self.config.output_dir)
            logger.info(
                "Processing file {}/{}: {}",
                position,
                len(markdown_files),
                markdown_file.rel_path,
            )
            try:
                summary.files.append(self.process_file(markdown_file.abs_path, output_dir))
            except OperationCancelled:
                raise
            except Exception as exc:
                logger.warning("Failed to process {}: {}", markdown_file.rel_path, exc)
                if self.run_logger is not None:
                    self.run_logger.log_stage_warning(
                        "file",
                        type(exc).__name__,
                        file=str(markdown_file.rel_path),
                    )
                summary.files.append(
                    FileResult(
                        source=markdown_file.abs_path,
                        output_dir=output_dir,
                        error=str(exc),
                    )
                )
        return summary

    def process_single(self, markdown_path: Path) -> BatchSummary:
        """Process one file and wrap its result in a batch summary."""

        summary = BatchSummary(dry_run=self.config.dry_run)
        summary.files.append(self.process_file(markdown_path))
        return summary

    def _process_section(
        self,
        generator: AudioGenerator,
        section: Section,
        index: int,
        total: int,
    ) -> SectionResult:
        """Generate or preview one section, recording failures instead of raising."""

        logger.info("Section {}/{}: {}", index, total, section.title)
        if section.has_timing:
            logger.info("Target duration: {:.1f} seconds", section.duration)
        logger.debug("Text: {}", preview_text(section.content))

        if self.config.dry_run:
            planned = generator.planned_path(section, index)
            logger.info("Would create: {}", planned)
            return SectionResult(
                index=index,
                title=section.title,
                output_path=planned,
                target_duration=section.duration if section.has_timing else None,
            )

        try:
            return generator.generate(section, index, self.context)
        except OperationCancelled:
            raise
        except Exception as exc:
            logger.error("Failed: {}", exc)
            if self.run_logger is not None:
                self.run_logger.log_stage_failure("section", type(exc).__name__, index=index)
            return SectionResult(
                index=index,
                title=section.title,
                output_path=None,
                target_duration=section.duration if section.has_timing else None,
                error=str(exc),
            )

    def _log_start(self, stage: str, **context: object) -> None:
        """Emit a stage-start line when a run logger is attached."""

        if self.run_logger is not None:
            self.run_logger.log_stage_start(stage, **context)

    def _log_complete(self, stage: str, **context: object) -> None:
        """Emit a stage-complete line when a run logger is attached."""

        if self.run_logger is not None:
            self.run_logger.log_stage_complete(stage, **context)
