"""Runtime logging for md2audio commands."""

from .logger import RunLogger

__all__ = ["RunLogger"]
