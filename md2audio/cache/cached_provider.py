"""Caching decorator for TTS providers.

Responsibilities:
- Serve `list_voices` from the voice cache when it holds fresh rows.
- Populate the cache on a miss without letting cache failures break listing.
- Pass synthesis calls straight through to the wrapped provider.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from ..errors import CacheError
from ..models.datatypes import ControlRange, GenerateRequest, Voice
from ..runtime_context import RunContext
from ..tts.provider import TTSProvider
from .voice_cache import CacheInfo, VoiceCache


class CachedProvider:
    """Wrap any `TTSProvider` with a `VoiceCache` partition named after it."""

    def __init__(self, provider: TTSProvider, cache: VoiceCache) -> None:
        """Store the wrapped provider and the shared cache handle."""

        self.provider = provider
        self.cache = cache

    @property
    def name(self) -> str:
        """Return the wrapped provider identifier."""

        return self.provider.name

    @property
    def tempo_control(self) -> ControlRange:
        """Return the wrapped provider tempo control."""

        return self.provider.tempo_control

    def output_extension(self, audio_format: str) -> str:
        """Return the wrapped provider extension for `audio_format`."""

        return self.provider.output_extension(audio_format)

    def generate(self, request: GenerateRequest, context: RunContext | None = None) -> Path:
        """Delegate synthesis to the wrapped provider."""

        return self.provider.generate(request, context)

    def list_voices(self, context: RunContext | None = None) -> list[Voice]:
        """Return cached voices when fresh, otherwise fetch and cache them."""

        try:
            cached = self.cache.get(self.name)
        except CacheError as exc:
            logger.warning("Voice cache read failed for {}: {}", self.name, exc)
            cached = []
        if cached:
            logger.debug("Voice cache hit for {} ({} voices)", self.name, len(cached))
            return cached

        voices = self.provider.list_voices(context)
        try:
            self.cache.set(self.name, voices)
        except CacheError as exc:
            logger.warning("Failed to cache voices for {}: {}", self.name, exc)
        return voices

    def list_voices_refresh(self, context: RunContext | None = None) -> list[Voice]:
        """Clear the partition, fetch from the provider, and cache the result."""

        self.cache.clear(self.name)
        voices = self.provider.list_voices(context)
        self.cache.set(self.name, voices)
        return voices

    def get_cache_info(self) -> CacheInfo:
        """Return cache statistics for the wrapped provider."""

        return self.cache.get_cache_info(self.name)

    def export_voices_to_json(self, output_path: Path) -> int:
        """Export the wrapped provider's cached voices to `output_path`."""

        return self.cache.export_to_json(self.name, output_path)
