"""Shared typed data models for md2audio.

This package contains dataclasses used across modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    BatchSummary,
    ControlRange,
    FileResult,
    GenerateRequest,
    MarkdownFile,
    Section,
    SectionResult,
    Voice,
)

__all__ = [
    "BatchSummary",
    "ControlRange",
    "FileResult",
    "GenerateRequest",
    "MarkdownFile",
    "Section",
    "SectionResult",
    "Voice",
]
