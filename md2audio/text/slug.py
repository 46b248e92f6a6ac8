"""Filename helpers for section audio outputs.

Responsibilities:
- Turn free-form section titles into short, filesystem-safe name segments.
- Build the `{prefix}_{index}_{title}.{ext}` clip filename.
"""

from __future__ import annotations

import re


_MAX_FILENAME_CHARS = 50
_INVALID_CHARS_PATTERN = re.compile(r"[^\w\s-]", re.ASCII)
_WHITESPACE_PATTERN = re.compile(r"\s+")


def sanitize_filename(title: str) -> str:
    """Return a lowercase, underscore-joined filename segment of at most 50 chars."""

    filename = _INVALID_CHARS_PATTERN.sub("", title)
    filename = _WHITESPACE_PATTERN.sub("_", filename)
    return filename.lower()[:_MAX_FILENAME_CHARS]


def section_filename(prefix: str, index: int, title: str, extension: str) -> str:
    """Return the clip filename for a 1-based section index."""

    return f"{prefix}_{index:02d}_{sanitize_filename(title)}.{extension}"
