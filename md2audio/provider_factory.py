"""Provider factory for TTS backends.

Responsibilities:
- Resolve provider identifiers to constructed provider instances once per run.
- Keep command wiring independent from concrete provider class construction.
"""

from __future__ import annotations

from .config import Md2AudioConfig
from .tts.elevenlabs import ElevenLabsProvider
from .tts.espeak import EspeakProvider
from .tts.google import GoogleTTSProvider
from .tts.provider import TTSProvider
from .tts.say import SayProvider


class ProviderFactory:
    """Factory for the closed set of supported TTS providers."""

    @staticmethod
    def create_provider(config: Md2AudioConfig, api_key: str | None = None) -> TTSProvider:
        """Create the TTS provider named by `config.provider`."""

        provider_id = config.provider
        if provider_id == "say":
            return SayProvider()
        if provider_id == "espeak":
            return EspeakProvider()
        if provider_id == "elevenlabs":
            return ElevenLabsProvider(api_key=api_key, settings=config.elevenlabs)
        if provider_id == "google":
            return GoogleTTSProvider(api_key=api_key, settings=config.google)
        raise ValueError(f"Unsupported TTS provider `{provider_id}`.")
