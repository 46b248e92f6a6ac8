"""Markdown section extraction and file discovery.

Responsibilities:
- Validate markdown inputs before reading them.
- Split documents on `##` headers and parse timing annotations like `(8s)`.
- Discover markdown files recursively for directory runs.

Key public functions:
- `parse_markdown_file`: return speech-ready `Section` records.
- `parse_timing_annotation`: split a header into title and target duration.
- `find_markdown_files`: collect `MarkdownFile` records under a directory.
"""

from __future__ import annotations

from pathlib import Path
import re

from ..models.datatypes import MarkdownFile, Section
from .markdown import clean_markdown


MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024

_H2_PATTERN = re.compile(r"^##\s+(.+)$")
_TIMING_PATTERN = re.compile(
    r"\((\d+(?:\.\d+)?)\s*(?:-\s*(\d+(?:\.\d+)?))?\s*s(?:ec(?:ond)?s?)?\)"
)


def validate_markdown_file(path: Path) -> None:
    """Validate that `path` is a regular `.md` file within the size limit.

    Raises:
        FileNotFoundError: If the path does not exist.
        ValueError: If the path is not a regular file, is too large, or is not `.md`.
    """

    if not path.exists():
        raise FileNotFoundError(f"Markdown file not found: `{path}`.")
    if not path.is_file():
        raise ValueError(f"Not a regular file: `{path}`.")
    size = path.stat().st_size
    if size > MAX_FILE_SIZE_BYTES:
        raise ValueError(
            f"File too large: {size} bytes (max: {MAX_FILE_SIZE_BYTES} bytes)."
        )
    if path.suffix != ".md":
        raise ValueError(f"Not a markdown file: `{path}`.")


def parse_timing_annotation(header: str) -> tuple[str, float, bool]:
    """Split a header into `(title, duration_seconds, has_timing)`.

    Range annotations like `(0-8s)` use the end value.
    """

    match = _TIMING_PATTERN.search(header)
    if match is None:
        return header, 0.0, False

    range_end = match.group(2)
    duration = float(range_end if range_end is not None else match.group(1))
    title = _TIMING_PATTERN.sub("", header).strip()
    return title, duration, True


def parse_markdown_text(text: str) -> list[Section]:
    """Extract sections from markdown text, dropping those with no speakable content."""

    sections: list[Section] = []
    header: tuple[str, float, bool] | None = None
    content_lines: list[str] = []

    for line in text.split("\n"):
        match = _H2_PATTERN.match(line)
        if match is not None:
            _append_section(sections, header, content_lines)
            header = parse_timing_annotation(match.group(1).strip())
            content_lines = []
        elif header is not None:
            content_lines.append(line)

    _append_section(sections, header, content_lines)
    return sections


def parse_markdown_file(path: Path) -> list[Section]:
    """Validate and parse one markdown file into sections."""

    validate_markdown_file(path)
    return parse_markdown_text(path.read_text(encoding="utf-8"))


def find_markdown_files(base_dir: Path) -> list[MarkdownFile]:
    """Return `.md` files under `base_dir` in sorted path order."""

    abs_base = base_dir.resolve()
    if not abs_base.is_dir():
        raise NotADirectoryError(f"Input directory not found: `{base_dir}`.")

    files: list[MarkdownFile] = []
    for path in sorted(abs_base.rglob("*.md")):
        if not path.is_file():
            continue
        files.append(
            MarkdownFile(
                abs_path=path,
                rel_path=path.relative_to(abs_base),
                base_dir=abs_base,
                file_name=path.stem,
            )
        )
    return files


def _append_section(
    sections: list[Section],
    header: tuple[str, float, bool] | None,
    content_lines: list[str],
) -> None:
    """Append a finished section when it has a header and non-empty content."""

    if header is None:
        return
    content = clean_markdown("\n".join(content_lines))
    if not content:
        return
    title, duration, has_timing = header
    sections.append(
        Section(title=title, content=content, duration=duration, has_timing=has_timing)
    )
