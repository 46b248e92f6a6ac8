"""Audio generation orchestration for markdown sections."""

from .generator import AudioGenerator, GeneratorConfig

__all__ = ["AudioGenerator", "GeneratorConfig"]
