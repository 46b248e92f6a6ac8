"""Unit tests for configuration loading, voice resolution, and API-key precedence."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from md2audio.config import (
    ConfigLoader,
    Md2AudioConfig,
    RuntimeConfigSources,
    default_provider_for_platform,
    load_dotenv_file,
    mask_api_key,
)
from md2audio.parsing import parse_optional_float, parse_permissive_boolean


def test_config_loader_from_yaml_normalizes_values(tmp_path: Path) -> None:
    """YAML loader should parse nested provider settings and normalize strings."""

    config_path = tmp_path / "md2audio.yaml"
    config_path.write_text(
        """
output_dir: " narrated "
provider: " ElevenLabs "
voice: " voice-123 "
rate: 200
format: " MP3 "
prefix: clip
model: eleven_turbo_v2
cache_ttl_days: 7
elevenlabs:
  stability: 0.7
  use_speaker_boost: "no"
google:
  language_code: en-GB
  pitch: -2
""".strip(),
        encoding="utf-8",
    )

    config = ConfigLoader.from_yaml(config_path)

    assert config.output_dir == Path("narrated")
    assert config.provider == "elevenlabs"
    assert config.voice == "voice-123"
    assert config.rate == 200
    assert config.audio_format == "mp3"
    assert config.prefix == "clip"
    assert config.model_id == "eleven_turbo_v2"
    assert config.cache_ttl_seconds == 7 * 24 * 60 * 60
    assert config.elevenlabs.stability == 0.7
    assert config.elevenlabs.use_speaker_boost is False
    assert config.google.language_code == "en-GB"
    assert config.google.pitch == -2.0


@pytest.mark.parametrize(
    ("yaml_text", "message"),
    [
        ("provider: festival", "Unsupported provider"),
        ("format: flac\nprovider: say", "Unsupported format"),
        ("preset: robot\nprovider: say", "Unknown voice preset"),
        ("rate: fast\nprovider: say", "`rate` must be a number"),
        ("speed: 1.1\nprovider: say", "Unsupported keys"),
        ("elevenlabs:\n  stability: 3\nprovider: say", "stability"),
        ("- not\n- a mapping", "top-level mapping"),
    ],
)
def test_config_loader_rejects_invalid_yaml(tmp_path: Path, yaml_text: str, message: str) -> None:
    """Invalid values, unknown keys, and non-mapping roots should fail loudly."""

    config_path = tmp_path / "bad.yaml"
    config_path.write_text(yaml_text, encoding="utf-8")

    with pytest.raises(ValueError, match=message):
        ConfigLoader.from_yaml(config_path)


def test_config_loader_from_env_reads_prefixed_variables() -> None:
    """Environment variables should populate top-level and provider settings."""

    config = ConfigLoader.from_env(
        {
            "MD2AUDIO_PROVIDER": "google",
            "MD2AUDIO_OUTPUT_DIR": "/tmp/clips",
            "MD2AUDIO_RATE": "150",
            "MD2AUDIO_FORMAT": "ogg",
            "MD2AUDIO_CACHE_PATH": "/tmp/voices.db",
            "GOOGLE_TTS_SPEAKING_RATE": "1.25",
            "ELEVENLABS_USE_SPEAKER_BOOST": "false",
            "UNRELATED": "ignored",
        }
    )

    assert config.provider == "google"
    assert config.output_dir == Path("/tmp/clips")
    assert config.rate == 150
    assert config.audio_format == "ogg"
    assert config.cache_path == Path("/tmp/voices.db")
    assert config.google.speaking_rate == 1.25
    assert config.elevenlabs.use_speaker_boost is False


def test_config_loader_load_prefers_yaml_over_environment(tmp_path: Path) -> None:
    """YAML values should override environment values key by key."""

    config_path = tmp_path / "md2audio.yaml"
    config_path.write_text(
        "provider: espeak\nelevenlabs:\n  stability: 0.9\n",
        encoding="utf-8",
    )

    config = ConfigLoader.load(
        config_path,
        env={
            "MD2AUDIO_PROVIDER": "say",
            "MD2AUDIO_PREFIX": "part",
            "ELEVENLABS_STABILITY": "0.2",
            "ELEVENLABS_STYLE": "0.4",
        },
    )

    assert config.provider == "espeak"
    assert config.prefix == "part"
    assert config.elevenlabs.stability == 0.9
    assert config.elevenlabs.style == 0.4


def test_resolved_voice_prefers_voice_then_preset_then_default() -> None:
    """Explicit voices win over presets, and each provider has its own default."""

    explicit = Md2AudioConfig(provider="say", voice="Alex", preset="british-male")

    assert explicit.resolved_voice() == "Alex"
    assert Md2AudioConfig(provider="say", preset="british-male").resolved_voice() == "Daniel"
    assert Md2AudioConfig(provider="espeak").resolved_voice() == "Kate"
    assert Md2AudioConfig(provider="elevenlabs").resolved_voice() == "21m00Tcm4TlvDq8ikWAM"
    assert Md2AudioConfig(provider="google").resolved_voice() == "en-US-Neural2-F"


def test_resolved_api_key_uses_cli_then_secure_then_env() -> None:
    """API-key precedence should be CLI, then secure storage, then environment."""

    config = Md2AudioConfig(provider="elevenlabs")
    env = {"ELEVENLABS_API_KEY": "env-key"}

    assert (
        config.resolved_api_key(
            RuntimeConfigSources(cli={"api_key": "cli-key"}, secure={"api_key": "s"}, env=env)
        )
        == "cli-key"
    )
    assert (
        config.resolved_api_key(RuntimeConfigSources(secure={"api_key": "secure-key"}, env=env))
        == "secure-key"
    )
    assert config.resolved_api_key(RuntimeConfigSources(env=env)) == "env-key"
    assert config.resolved_api_key() is None
    assert Md2AudioConfig(provider="say").resolved_api_key(RuntimeConfigSources(env=env)) is None


def test_describe_masks_api_key() -> None:
    """Configuration rows should never show a full API key."""

    rows = dict(Md2AudioConfig(provider="elevenlabs").describe("sk_1234567890abcd"))

    assert rows["API key"] == "sk_1****abcd"
    assert rows["Model"] == "eleven_multilingual_v2"
    assert "Rate" not in rows
    assert dict(Md2AudioConfig(provider="say").describe())["Rate"] == "180 wpm"


@pytest.mark.parametrize(
    ("api_key", "expected"),
    [
        (None, "(not set)"),
        ("  ", "(not set)"),
        ("short", "****"),
        ("abcdefghijkl", "abcd****ijkl"),
    ],
)
def test_mask_api_key(api_key: str | None, expected: str) -> None:
    """Masking should reveal at most the first and last four characters."""

    assert mask_api_key(api_key) == expected


def test_default_provider_for_platform() -> None:
    """macOS should default to `say` and every other platform to `espeak`."""

    assert default_provider_for_platform("Darwin") == "say"
    assert default_provider_for_platform("Linux") == "espeak"
    assert default_provider_for_platform("Windows") == "espeak"


def test_load_dotenv_file_does_not_override_existing_values(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """`.env` values should fill gaps without replacing exported variables."""

    monkeypatch.setenv("ELEVENLABS_API_KEY", "exported-key")
    monkeypatch.delenv("GOOGLE_TTS_API_KEY", raising=False)
    dotenv_path = tmp_path / ".env"
    dotenv_path.write_text(
        "ELEVENLABS_API_KEY=dotenv-key\nGOOGLE_TTS_API_KEY=dotenv-google\n",
        encoding="utf-8",
    )

    assert load_dotenv_file(dotenv_path) is True
    assert load_dotenv_file(tmp_path / "missing.env") is False

    assert os.environ["ELEVENLABS_API_KEY"] == "exported-key"
    assert os.environ["GOOGLE_TTS_API_KEY"] == "dotenv-google"


def test_parsing_helpers() -> None:
    """Boolean and float parsing should accept common tokens and reject junk."""

    assert parse_permissive_boolean(" YES ") is True
    assert parse_permissive_boolean("off") is False
    assert parse_permissive_boolean("maybe") is None
    assert parse_optional_float(" 1.5 ", "speed") == 1.5
    assert parse_optional_float("", "speed") is None
    with pytest.raises(ValueError, match="boolean"):
        parse_optional_float(True, "speed")
