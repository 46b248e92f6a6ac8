"""Configuration model and loaders for md2audio.

Responsibilities:
- Define runtime configuration as typed dataclasses with documented defaults.
- Resolve voices from presets and provider defaults.
- Load settings from YAML files, environment variables, and `.env` files.
- Resolve provider API keys with deterministic source precedence.

Key types:
- `Md2AudioConfig`: normalized settings for one command invocation.
- `RuntimeConfigSources`: optional value sources for API-key precedence.
- `ConfigLoader`: static construction helpers for `Md2AudioConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import platform
from typing import Any, Mapping

from dotenv import load_dotenv
import yaml

from .parsing import normalize_optional_string, parse_optional_float, parse_permissive_boolean
from .tts.elevenlabs import (
    API_KEY_ENV_VAR as ELEVENLABS_API_KEY_ENV_VAR,
    DEFAULT_MODEL_ID as ELEVENLABS_DEFAULT_MODEL_ID,
    DEFAULT_VOICE_ID as ELEVENLABS_DEFAULT_VOICE_ID,
    ElevenLabsSettings,
)
from .tts.google import (
    API_KEY_ENV_VAR as GOOGLE_API_KEY_ENV_VAR,
    DEFAULT_LANGUAGE_CODE as GOOGLE_DEFAULT_LANGUAGE_CODE,
    DEFAULT_VOICE_NAME as GOOGLE_DEFAULT_VOICE_NAME,
    GoogleSettings,
)


VOICE_PRESETS: Mapping[str, str] = {
    "british-female": "Kate",
    "british-male": "Daniel",
    "us-female": "Samantha",
    "us-male": "Alex",
    "australian-female": "Karen",
    "indian-female": "Veena",
}
DEFAULT_LOCAL_VOICE = "Kate"
DEFAULT_RATE = 180
DEFAULT_FORMAT = "aiff"
DEFAULT_PREFIX = "section"
DEFAULT_OUTPUT_DIR = Path("./audio_sections")
DEFAULT_CACHE_TTL_DAYS = 30.0
SUPPORTED_PROVIDERS = frozenset({"say", "espeak", "elevenlabs", "google"})
SUPPORTED_FORMATS = frozenset({"aiff", "m4a", "mp4", "mp3", "wav", "ogg"})
API_KEY_ENV_VARS: Mapping[str, str] = {
    "elevenlabs": ELEVENLABS_API_KEY_ENV_VAR,
    "google": GOOGLE_API_KEY_ENV_VAR,
}
_LOCAL_PROVIDERS = frozenset({"say", "espeak"})


def default_provider_for_platform(system_name: str | None = None) -> str:
    """Return `say` on macOS and `espeak` everywhere else."""

    system = system_name if system_name is not None else platform.system()
    return "say" if system == "Darwin" else "espeak"


def mask_api_key(api_key: str | None) -> str:
    """Return a display-safe key showing only the first and last four characters."""

    normalized = normalize_optional_string(api_key)
    if normalized is None:
        return "(not set)"
    if len(normalized) <= 8:
        return "****"
    return f"{normalized[:4]}****{normalized[-4:]}"


def load_dotenv_file(path: Path | None = None) -> bool:
    """Load `.env` values into `os.environ` without overriding existing variables."""

    dotenv_path = path if path is not None else Path(".env")
    if not dotenv_path.is_file():
        return False
    return load_dotenv(dotenv_path=dotenv_path, override=False)


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic API-key precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        secure: Values loaded from secure local credential storage.
        env: Values loaded from environment variables.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    secure: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class Md2AudioConfig:
    """Runtime configuration for one command invocation.

    Attributes:
        output_dir: Base directory for generated clips.
        provider: TTS provider identifier.
        voice: Explicit voice identifier; overrides `preset`.
        preset: Named voice preset for local providers.
        rate: Speaking rate in words per minute for untimed sections.
        audio_format: Requested output format.
        prefix: Clip filename prefix.
        model_id: Optional model override for remote providers.
        dry_run: Report planned outputs without synthesizing.
        cache_path: Voice cache file; `None` selects `~/.md2audio/voice_cache.db`.
        cache_ttl_days: Voice cache freshness window in days.
        elevenlabs: ElevenLabs voice settings.
        google: Google Cloud TTS audio settings.
    """

    output_dir: Path = DEFAULT_OUTPUT_DIR
    provider: str = field(default_factory=default_provider_for_platform)
    voice: str | None = None
    preset: str | None = None
    rate: int = DEFAULT_RATE
    audio_format: str = DEFAULT_FORMAT
    prefix: str = DEFAULT_PREFIX
    model_id: str | None = None
    dry_run: bool = False
    cache_path: Path | None = None
    cache_ttl_days: float = DEFAULT_CACHE_TTL_DAYS
    elevenlabs: ElevenLabsSettings = field(default_factory=ElevenLabsSettings)
    google: GoogleSettings = field(default_factory=GoogleSettings)

    def validate(self) -> None:
        """Validate configuration values before providers are created."""

        if self.provider not in SUPPORTED_PROVIDERS:
            supported = ", ".join(sorted(SUPPORTED_PROVIDERS))
            raise ValueError(f"Unsupported provider `{self.provider}`; supported: {supported}.")
        if self.audio_format not in SUPPORTED_FORMATS:
            supported = ", ".join(sorted(SUPPORTED_FORMATS))
            raise ValueError(f"Unsupported format `{self.audio_format}`; supported: {supported}.")
        if self.preset is not None and self.preset not in VOICE_PRESETS:
            supported = ", ".join(sorted(VOICE_PRESETS))
            raise ValueError(f"Unknown voice preset `{self.preset}`; available: {supported}.")
        if self.rate <= 0:
            raise ValueError("`rate` must be a positive integer.")
        if not self.prefix.strip():
            raise ValueError("`prefix` must be a non-empty string.")
        if self.cache_ttl_days <= 0:
            raise ValueError("`cache_ttl_days` must be positive.")
        self.elevenlabs.validate()
        self.google.validate()

    @property
    def cache_ttl_seconds(self) -> float:
        """Return the cache TTL in seconds."""

        return self.cache_ttl_days * 24 * 60 * 60

    def resolved_voice(self) -> str:
        """Return the voice to use: explicit voice, then preset, then provider default."""

        explicit = normalize_optional_string(self.voice)
        if explicit is not None:
            return explicit
        if self.provider in _LOCAL_PROVIDERS:
            if self.preset is not None:
                return VOICE_PRESETS[self.preset]
            return DEFAULT_LOCAL_VOICE
        if self.provider == "elevenlabs":
            return ELEVENLABS_DEFAULT_VOICE_ID
        return GOOGLE_DEFAULT_VOICE_NAME

    def resolved_api_key(self, sources: RuntimeConfigSources | None = None) -> str | None:
        """Resolve the provider API key with `cli` > `secure` > `env` precedence."""

        resolved_sources = sources if sources is not None else RuntimeConfigSources()
        env_key = API_KEY_ENV_VARS.get(self.provider)
        if env_key is None:
            return None
        for mapping, key in (
            (resolved_sources.cli, "api_key"),
            (resolved_sources.secure, "api_key"),
            (resolved_sources.env, env_key),
        ):
            value = normalize_optional_string(mapping.get(key))
            if value is not None:
                return value
        return None

    def describe(self, api_key: str | None = None) -> list[tuple[str, str]]:
        """Return display rows for the effective configuration."""

        rows = [
            ("Provider", self.provider),
            ("Voice", self.resolved_voice()),
            ("Format", self.audio_format),
            ("Output", str(self.output_dir)),
        ]
        if self.provider in _LOCAL_PROVIDERS:
            rows.append(("Rate", f"{self.rate} wpm"))
        else:
            rows.append(("API key", mask_api_key(api_key)))
        if self.provider == "elevenlabs":
            rows.append(("Model", self.model_id or self.elevenlabs.model_id))
        return rows


class ConfigLoader:
    """Factory methods for creating `Md2AudioConfig` from external sources."""

    _SUPPORTED_KEYS = frozenset(
        {
            "output_dir",
            "provider",
            "voice",
            "preset",
            "rate",
            "format",
            "prefix",
            "model",
            "cache_path",
            "cache_ttl_days",
            "elevenlabs",
            "google",
        }
    )
    _ELEVENLABS_KEYS = frozenset(
        {"stability", "similarity_boost", "style", "use_speaker_boost", "speed", "model_id"}
    )
    _GOOGLE_KEYS = frozenset({"language_code", "speaking_rate", "pitch", "volume_gain_db"})
    _ENV_KEYS: Mapping[str, str] = {
        "MD2AUDIO_OUTPUT_DIR": "output_dir",
        "MD2AUDIO_PROVIDER": "provider",
        "MD2AUDIO_VOICE": "voice",
        "MD2AUDIO_PRESET": "preset",
        "MD2AUDIO_RATE": "rate",
        "MD2AUDIO_FORMAT": "format",
        "MD2AUDIO_PREFIX": "prefix",
        "MD2AUDIO_CACHE_PATH": "cache_path",
        "MD2AUDIO_CACHE_TTL_DAYS": "cache_ttl_days",
    }
    _ELEVENLABS_ENV_KEYS: Mapping[str, str] = {
        "ELEVENLABS_STABILITY": "stability",
        "ELEVENLABS_SIMILARITY_BOOST": "similarity_boost",
        "ELEVENLABS_STYLE": "style",
        "ELEVENLABS_USE_SPEAKER_BOOST": "use_speaker_boost",
        "ELEVENLABS_SPEED": "speed",
        "ELEVENLABS_MODEL_ID": "model_id",
    }
    _GOOGLE_ENV_KEYS: Mapping[str, str] = {
        "GOOGLE_TTS_LANGUAGE_CODE": "language_code",
        "GOOGLE_TTS_SPEAKING_RATE": "speaking_rate",
        "GOOGLE_TTS_PITCH": "pitch",
        "GOOGLE_TTS_VOLUME_GAIN_DB": "volume_gain_db",
    }

    @staticmethod
    def from_yaml(path: Path) -> Md2AudioConfig:
        """Create a validated config from a YAML file."""

        payload = ConfigLoader._parse_yaml_payload(path.read_text(encoding="utf-8"), path)
        return ConfigLoader._build_config_from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> Md2AudioConfig:
        """Create a validated config from environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload = ConfigLoader._env_payload(env_map)
        return ConfigLoader._build_config_from_mapping(payload, source_label="environment")

    @staticmethod
    def load(
        config_path: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> Md2AudioConfig:
        """Create a validated config where YAML values override environment values."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload: dict[str, Any] = ConfigLoader._env_payload(env_map)
        source_label = "environment"
        if config_path is not None:
            yaml_payload = ConfigLoader._parse_yaml_payload(
                config_path.read_text(encoding="utf-8"), config_path
            )
            source_label = f"YAML `{config_path}`"
            ConfigLoader._validate_keys(yaml_payload, ConfigLoader._SUPPORTED_KEYS, source_label)
            for key, value in yaml_payload.items():
                if key in {"elevenlabs", "google"} and isinstance(value, Mapping):
                    merged = dict(payload.get(key, {}))
                    merged.update(value)
                    payload[key] = merged
                else:
                    payload[key] = value
        return ConfigLoader._build_config_from_mapping(payload, source_label=source_label)

    @staticmethod
    def _env_payload(env_map: Mapping[str, str]) -> dict[str, Any]:
        """Translate recognized environment variables into a config mapping."""

        payload: dict[str, Any] = {}
        for env_key, config_key in ConfigLoader._ENV_KEYS.items():
            value = normalize_optional_string(env_map.get(env_key))
            if value is not None:
                payload[config_key] = value
        for section, keys in (
            ("elevenlabs", ConfigLoader._ELEVENLABS_ENV_KEYS),
            ("google", ConfigLoader._GOOGLE_ENV_KEYS),
        ):
            nested = {
                config_key: env_map[env_key]
                for env_key, config_key in keys.items()
                if normalize_optional_string(env_map.get(env_key)) is not None
            }
            if nested:
                payload[section] = nested
        return payload

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` is not valid YAML: {exc}") from exc
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _build_config_from_mapping(
        payload: Mapping[str, Any],
        source_label: str,
    ) -> Md2AudioConfig:
        """Build a validated config from a normalized mapping payload."""

        ConfigLoader._validate_keys(payload, ConfigLoader._SUPPORTED_KEYS, source_label)

        config = Md2AudioConfig()
        output_dir = normalize_optional_string(payload.get("output_dir"))
        if output_dir is not None:
            config.output_dir = Path(output_dir)
        provider = normalize_optional_string(payload.get("provider"))
        if provider is not None:
            config.provider = provider.lower()
        config.voice = normalize_optional_string(payload.get("voice"))
        config.preset = normalize_optional_string(payload.get("preset"))
        rate = parse_optional_float(payload.get("rate"), "rate")
        if rate is not None:
            if rate != int(rate):
                raise ValueError(f"`rate` in {source_label} must be a whole number.")
            config.rate = int(rate)
        audio_format = normalize_optional_string(payload.get("format"))
        if audio_format is not None:
            config.audio_format = audio_format.lower()
        prefix = normalize_optional_string(payload.get("prefix"))
        if prefix is not None:
            config.prefix = prefix
        config.model_id = normalize_optional_string(payload.get("model"))
        cache_path = normalize_optional_string(payload.get("cache_path"))
        if cache_path is not None:
            config.cache_path = Path(cache_path).expanduser()
        cache_ttl_days = parse_optional_float(payload.get("cache_ttl_days"), "cache_ttl_days")
        if cache_ttl_days is not None:
            config.cache_ttl_days = cache_ttl_days

        config.elevenlabs = ConfigLoader._elevenlabs_settings(
            ConfigLoader._nested_mapping(payload, "elevenlabs", source_label),
            source_label,
        )
        config.google = ConfigLoader._google_settings(
            ConfigLoader._nested_mapping(payload, "google", source_label),
            source_label,
        )
        config.validate()
        return config

    @staticmethod
    def _elevenlabs_settings(payload: Mapping[str, Any], source_label: str) -> ElevenLabsSettings:
        """Build ElevenLabs settings from a nested mapping."""

        ConfigLoader._validate_keys(
            payload, ConfigLoader._ELEVENLABS_KEYS, f"{source_label} `elevenlabs`"
        )
        defaults = ElevenLabsSettings()
        use_speaker_boost = defaults.use_speaker_boost
        if "use_speaker_boost" in payload:
            parsed = parse_permissive_boolean(payload["use_speaker_boost"])
            if parsed is None:
                raise ValueError("`use_speaker_boost` must be a boolean value.")
            use_speaker_boost = parsed
        return ElevenLabsSettings(
            stability=ConfigLoader._float_or_default(payload, "stability", defaults.stability),
            similarity_boost=ConfigLoader._float_or_default(
                payload, "similarity_boost", defaults.similarity_boost
            ),
            style=ConfigLoader._float_or_default(payload, "style", defaults.style),
            use_speaker_boost=use_speaker_boost,
            speed=ConfigLoader._float_or_default(payload, "speed", defaults.speed),
            model_id=(
                normalize_optional_string(payload.get("model_id")) or ELEVENLABS_DEFAULT_MODEL_ID
            ),
        )

    @staticmethod
    def _google_settings(payload: Mapping[str, Any], source_label: str) -> GoogleSettings:
        """Build Google settings from a nested mapping."""

        ConfigLoader._validate_keys(payload, ConfigLoader._GOOGLE_KEYS, f"{source_label} `google`")
        defaults = GoogleSettings()
        return GoogleSettings(
            language_code=normalize_optional_string(payload.get("language_code"))
            or GOOGLE_DEFAULT_LANGUAGE_CODE,
            speaking_rate=ConfigLoader._float_or_default(
                payload, "speaking_rate", defaults.speaking_rate
            ),
            pitch=ConfigLoader._float_or_default(payload, "pitch", defaults.pitch),
            volume_gain_db=ConfigLoader._float_or_default(
                payload, "volume_gain_db", defaults.volume_gain_db
            ),
        )

    @staticmethod
    def _nested_mapping(
        payload: Mapping[str, Any],
        key: str,
        source_label: str,
    ) -> Mapping[str, Any]:
        """Return a nested mapping value or an empty mapping when absent."""

        value = payload.get(key)
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise ValueError(f"`{key}` in {source_label} must be a mapping.")
        return value

    @staticmethod
    def _float_or_default(payload: Mapping[str, Any], key: str, default: float) -> float:
        """Parse an optional float from a mapping, falling back to `default`."""

        parsed = parse_optional_float(payload.get(key), key)
        return default if parsed is None else parsed

    @staticmethod
    def _validate_keys(
        payload: Mapping[str, Any],
        supported: frozenset[str],
        source_label: str,
    ) -> None:
        """Reject unknown keys so typos fail loudly."""

        unknown = sorted(str(key) for key in payload.keys() if key not in supported)
        if unknown:
            raise ValueError(
                f"Unsupported keys in {source_label}: {', '.join(unknown)}. "
                f"Supported: {', '.join(sorted(supported))}."
            )
