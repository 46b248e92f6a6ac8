"""Top-level package for md2audio.

This package narrates the `##` sections of markdown files into one audio clip
per section, fitting speech to optional per-section timing annotations. The
main orchestration entry point is `MarkdownProcessor`.
"""

from .processor import MarkdownProcessor

__all__ = ["MarkdownProcessor", "__version__"]

__version__ = "0.1.0"
