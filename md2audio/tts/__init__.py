"""Text-to-speech provider abstractions and backends.

This package contains the provider protocol, duration fitting, the retrying
HTTP executor, and the `say`, `espeak`, ElevenLabs, and Google backends.
"""

from .elevenlabs import ElevenLabsProvider, ElevenLabsSettings
from .espeak import EspeakProvider
from .google import GoogleSettings, GoogleTTSProvider
from .provider import TTSProvider
from .say import SayProvider

__all__ = [
    "ElevenLabsProvider",
    "ElevenLabsSettings",
    "EspeakProvider",
    "GoogleSettings",
    "GoogleTTSProvider",
    "SayProvider",
    "TTSProvider",
]
