"""Text processing helpers for markdown input and output naming."""

from .markdown import clean_markdown
from .sections import (
    find_markdown_files,
    parse_markdown_file,
    parse_markdown_text,
    parse_timing_annotation,
)
from .slug import sanitize_filename, section_filename

__all__ = [
    "clean_markdown",
    "find_markdown_files",
    "parse_markdown_file",
    "parse_markdown_text",
    "parse_timing_annotation",
    "sanitize_filename",
    "section_filename",
]
