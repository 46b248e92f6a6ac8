"""Voice metadata caching for TTS providers."""

from .cached_provider import CachedProvider
from .voice_cache import CacheInfo, VoiceCache, default_cache_path

__all__ = ["CacheInfo", "CachedProvider", "VoiceCache", "default_cache_path"]
