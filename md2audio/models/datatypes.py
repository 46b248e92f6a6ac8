"""Core datatypes shared across md2audio modules.

Responsibilities:
- Represent immutable records exchanged between parsing, synthesis, and caching.
- Provide explicit typing and stable dictionary serialization for exports.

Key types:
- `Voice`, `GenerateRequest`, `ControlRange`, `Section`, `MarkdownFile`,
  `SectionResult`, `FileResult`, and `BatchSummary`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping


@dataclass(frozen=True, slots=True)
class Voice:
    """One voice offered by a TTS provider.

    Attributes:
        id: Provider-native voice identifier used in synthesis requests.
        name: Human-readable voice name.
        description: Free-form display description.
        language: Language or locale code, when known.
        gender: Gender label, when known.
    """

    id: str
    name: str
    description: str = ""
    language: str = ""
    gender: str = ""

    def to_dict(self) -> dict[str, str]:
        """Serialize voice metadata into a JSON-safe mapping."""

        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "language": self.language,
            "gender": self.gender,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> Voice:
        """Build a voice from a mapping produced by `to_dict`."""

        return cls(
            id=str(payload.get("id", "")),
            name=str(payload.get("name", "")),
            description=str(payload.get("description", "") or ""),
            language=str(payload.get("language", "") or ""),
            gender=str(payload.get("gender", "") or ""),
        )


@dataclass(frozen=True, slots=True)
class GenerateRequest:
    """Parameters for one synthesis job.

    Attributes:
        text: Text to speak.
        voice_id: Provider-specific voice identifier.
        output_path: Destination hint; providers may rewrite the extension.
        format: Requested container/encoding (`aiff`, `m4a`, `mp3`, `wav`, ...).
        rate: Speaking rate in words per minute for rate-controlled backends.
        model_id: Model identifier for backends that expose models.
        target_duration: Desired clip length in seconds.
    """

    text: str
    voice_id: str
    output_path: Path
    format: str = "aiff"
    rate: int | None = None
    model_id: str | None = None
    target_duration: float | None = None


@dataclass(frozen=True, slots=True)
class ControlRange:
    """Bounds and default for one backend's tempo control.

    Attributes:
        minimum: Smallest accepted control value.
        maximum: Largest accepted control value.
        default: Value used when no fitting is possible.
        unit: Display unit for warnings (`wpm` or `x`).
    """

    minimum: float
    maximum: float
    default: float
    unit: str = ""

    def clamp(self, value: float) -> float:
        """Return `value` clamped into `[minimum, maximum]`."""

        return max(self.minimum, min(self.maximum, value))

    @property
    def is_words_per_minute(self) -> bool:
        """Return whether the control is a words-per-minute rate."""

        return self.unit == "wpm"


@dataclass(frozen=True, slots=True)
class Section:
    """One `##` block of a markdown document.

    Attributes:
        title: Header text without any timing annotation.
        content: Speech-ready content with markdown formatting removed.
        duration: Target duration in seconds when `has_timing` is set.
        has_timing: Whether the header carried a timing annotation.
    """

    title: str
    content: str
    duration: float = 0.0
    has_timing: bool = False


@dataclass(frozen=True, slots=True)
class MarkdownFile:
    """A markdown file discovered under a base directory.

    Attributes:
        abs_path: Absolute path to the file.
        rel_path: Path relative to `base_dir`.
        base_dir: Absolute directory that was scanned.
        file_name: File name without the `.md` extension.
    """

    abs_path: Path
    rel_path: Path
    base_dir: Path
    file_name: str

    def output_dir(self, base_output_dir: Path) -> Path:
        """Return the mirrored output directory for this file's clips."""

        rel_dir = self.rel_path.parent
        if str(rel_dir) == ".":
            return base_output_dir / self.file_name
        return base_output_dir / rel_dir / self.file_name


@dataclass(frozen=True, slots=True)
class SectionResult:
    """Outcome of synthesizing one section.

    Attributes:
        index: 1-based section index within its file.
        title: Section title.
        output_path: Final audio path, or the planned path in dry-run mode.
        target_duration: Requested duration, when the section was timed.
        actual_duration: Measured duration, when the output was measurable.
        error: Failure message when synthesis failed.
    """

    index: int
    title: str
    output_path: Path | None
    target_duration: float | None = None
    actual_duration: float | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        """Return whether the section produced audio."""

        return self.error is None


@dataclass(slots=True)
class FileResult:
    """Per-file outcome collected during batch processing."""

    source: Path
    output_dir: Path
    sections: list[SectionResult] = field(default_factory=list)
    error: str | None = None

    @property
    def generated_count(self) -> int:
        """Return how many sections produced audio."""

        return sum(1 for section in self.sections if section.succeeded)


@dataclass(slots=True)
class BatchSummary:
    """Aggregated counts for a file or directory run."""

    files: list[FileResult] = field(default_factory=list)
    dry_run: bool = False

    @property
    def attempted_sections(self) -> int:
        """Return the number of sections attempted across files."""

        return sum(len(result.sections) for result in self.files)

    @property
    def generated_sections(self) -> int:
        """Return the number of sections that produced audio across files."""

        return sum(result.generated_count for result in self.files)

    @property
    def failed_files(self) -> list[FileResult]:
        """Return files that failed before any section was attempted."""

        return [result for result in self.files if result.error is not None]
