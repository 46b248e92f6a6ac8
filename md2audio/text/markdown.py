"""Markdown-to-speech text cleanup.

Responsibilities:
- Strip inline markdown formatting that a synthesizer would read aloud.
- Collapse line structure into a single speakable paragraph.
"""

from __future__ import annotations

import re


_NEWLINES_PATTERN = re.compile(r"\n+")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_EMPHASIS_PATTERN = re.compile(r"[*_]{1,2}([^*_]+)[*_]{1,2}")
_INLINE_CODE_PATTERN = re.compile(r"`[^`]+`")


def clean_markdown(text: str) -> str:
    """Return `text` with links unwrapped and emphasis and inline code removed.

    Rules are applied in order: newlines and whitespace runs collapse to one
    space, `[label](url)` becomes `label`, `*x*`/`**x**`/`_x_`/`__x__` become
    `x`, and backtick spans are dropped entirely.
    """

    cleaned = _NEWLINES_PATTERN.sub(" ", text)
    cleaned = _WHITESPACE_PATTERN.sub(" ", cleaned)
    cleaned = _LINK_PATTERN.sub(r"\1", cleaned)
    cleaned = _EMPHASIS_PATTERN.sub(r"\1", cleaned)
    cleaned = _INLINE_CODE_PATTERN.sub("", cleaned)
    return cleaned.strip()
