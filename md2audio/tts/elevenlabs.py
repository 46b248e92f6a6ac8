"""ElevenLabs REST synthesizer backend.

Responsibilities:
- Send text-to-speech requests with voice settings and fitted speed.
- List account voices from the v2 voices endpoint.
- Route every HTTP call through the retrying request executor.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from ..errors import ProviderSetupError, RemoteRequestError
from ..models.datatypes import ControlRange, GenerateRequest, Voice
from ..parsing import normalize_optional_string
from ..runtime_context import RunContext
from .duration import ELEVENLABS_SPEED_RANGE, fit_speed_multiplier
from .http_retry import RetryingRequestExecutor
from .provider import prepare_output_path, speakable_text


TEXT_TO_SPEECH_BASE_URL = "https://api.elevenlabs.io/v1"
VOICES_BASE_URL = "https://api.elevenlabs.io/v2"
DEFAULT_MODEL_ID = "eleven_multilingual_v2"
DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"
API_KEY_ENV_VAR = "ELEVENLABS_API_KEY"


@dataclass(frozen=True, slots=True)
class ElevenLabsSettings:
    """Voice settings sent with every ElevenLabs synthesis request.

    Attributes:
        stability: Voice consistency, 0.0-1.0.
        similarity_boost: Closeness to the original voice, 0.0-1.0.
        style: Style exaggeration, 0.0-1.0; sent only when positive.
        use_speaker_boost: Speaker boost flag; sent only when enabled.
        speed: Speed multiplier for untimed sections, 0.7-1.2.
        model_id: Default model when a request carries none.
    """

    stability: float = 0.5
    similarity_boost: float = 0.5
    style: float = 0.0
    use_speaker_boost: bool = True
    speed: float = 1.0
    model_id: str = DEFAULT_MODEL_ID

    def validate(self) -> None:
        """Validate setting ranges before requests are built."""

        for field_name in ("stability", "similarity_boost", "style"):
            value = getattr(self, field_name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"`{field_name}` must be between 0.0 and 1.0, got {value}.")
        if not ELEVENLABS_SPEED_RANGE.minimum <= self.speed <= ELEVENLABS_SPEED_RANGE.maximum:
            raise ValueError(
                f"`speed` must be between {ELEVENLABS_SPEED_RANGE.minimum} and "
                f"{ELEVENLABS_SPEED_RANGE.maximum}, got {self.speed}."
            )


class ElevenLabsProvider:
    """TTS provider backed by the ElevenLabs HTTP API."""

    def __init__(
        self,
        api_key: str | None,
        settings: ElevenLabsSettings | None = None,
        executor: RetryingRequestExecutor | None = None,
        text_to_speech_base_url: str = TEXT_TO_SPEECH_BASE_URL,
        voices_base_url: str = VOICES_BASE_URL,
    ) -> None:
        """Initialize API credentials, voice settings, and HTTP policy."""

        normalized_key = normalize_optional_string(api_key)
        if normalized_key is None:
            raise ProviderSetupError(
                "elevenlabs",
                f"ElevenLabs API key not found. Set `{API_KEY_ENV_VAR}` or store one with "
                "`md2audio credentials --provider elevenlabs --set-api-key`.",
            )
        self.api_key = normalized_key
        self.settings = settings if settings is not None else ElevenLabsSettings()
        self.settings.validate()
        self.executor = (
            executor
            if executor is not None
            else RetryingRequestExecutor(provider_label="ElevenLabs")
        )
        self.text_to_speech_base_url = text_to_speech_base_url.rstrip("/")
        self.voices_base_url = voices_base_url.rstrip("/")

    @property
    def name(self) -> str:
        """Return the provider identifier."""

        return "elevenlabs"

    @property
    def tempo_control(self) -> ControlRange:
        """Return the ElevenLabs speed multiplier range."""

        return ELEVENLABS_SPEED_RANGE

    def output_extension(self, audio_format: str) -> str:
        """Return `mp3`; the API is always asked for MP3 output."""

        return "mp3"

    def generate(self, request: GenerateRequest, context: RunContext | None = None) -> Path:
        """Synthesize MP3 audio and write it next to the requested path."""

        text = speakable_text(request)
        model_id = normalize_optional_string(request.model_id) or self.settings.model_id
        payload = {
            "text": text,
            "model_id": model_id,
            "voice_settings": self.voice_settings_payload(text, request.target_duration),
        }

        logger.debug(
            "ElevenLabs API: POST /text-to-speech/{} (model: {})", request.voice_id, model_id
        )
        response = self.executor.execute(
            "POST",
            f"{self.text_to_speech_base_url}/text-to-speech/{request.voice_id}",
            context,
            headers={
                "xi-api-key": self.api_key,
                "Content-Type": "application/json",
                "Accept": "audio/mpeg",
            },
            json=payload,
        )
        audio_bytes = bytes(response.content)
        if not audio_bytes:
            raise RemoteRequestError(
                "ElevenLabs returned an empty audio payload.",
                status_code=response.status_code,
            )

        output_path = prepare_output_path(request.output_path, "mp3")
        output_path.write_bytes(audio_bytes)
        return output_path

    def list_voices(self, context: RunContext | None = None) -> list[Voice]:
        """Return voices available to the configured account."""

        logger.debug("ElevenLabs API: GET /voices")
        response = self.executor.execute(
            "GET",
            f"{self.voices_base_url}/voices",
            context,
            headers={"xi-api-key": self.api_key},
        )
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteRequestError(
                "ElevenLabs returned an invalid voices payload.",
                status_code=response.status_code,
            ) from exc
        return parse_elevenlabs_voices(payload)

    def voice_settings_payload(
        self,
        text: str,
        target_duration: float | None,
    ) -> dict[str, Any]:
        """Build the `voice_settings` object, fitting speed for timed sections."""

        voice_settings: dict[str, Any] = {
            "stability": self.settings.stability,
            "similarity_boost": self.settings.similarity_boost,
        }
        if self.settings.style > 0:
            voice_settings["style"] = self.settings.style
        if self.settings.use_speaker_boost:
            voice_settings["use_speaker_boost"] = True

        if target_duration is not None and target_duration > 0:
            fitted = fit_speed_multiplier(text, target_duration, ELEVENLABS_SPEED_RANGE)
            voice_settings["speed"] = fitted.value
            logger.info(
                "Target duration: {:.1f}s, calculated speed: {:.2f}x",
                target_duration,
                fitted.value,
            )
        elif self.settings.speed != 1.0 and self.settings.speed > 0:
            voice_settings["speed"] = self.settings.speed
        return voice_settings


def parse_elevenlabs_voices(payload: Any) -> list[Voice]:
    """Map a `{"voices": [...]}` payload onto `Voice` records."""

    if not isinstance(payload, dict) or not isinstance(payload.get("voices"), list):
        raise RemoteRequestError("ElevenLabs voices response is missing a `voices` list.")

    voices: list[Voice] = []
    for item in payload["voices"]:
        if not isinstance(item, dict):
            continue
        labels = item.get("labels") if isinstance(item.get("labels"), dict) else {}
        voices.append(
            Voice(
                id=str(item.get("voice_id", "")),
                name=str(item.get("name", "")),
                description=str(item.get("description") or ""),
                language=str(labels.get("language") or ""),
                gender=str(labels.get("gender") or ""),
            )
        )
    return voices
