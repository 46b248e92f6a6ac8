"""Google Cloud Text-to-Speech REST backend.

Responsibilities:
- Call the `text:synthesize` REST endpoint with an API key.
- Derive language codes from voice names and encodings from output formats.
- List voices with tier and sample-rate descriptions.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from ..errors import ProviderSetupError, RemoteRequestError
from ..models.datatypes import ControlRange, GenerateRequest, Voice
from ..parsing import normalize_optional_string
from ..runtime_context import RunContext
from .duration import GOOGLE_SPEED_RANGE, fit_speed_multiplier
from .http_retry import RetryingRequestExecutor
from .provider import prepare_output_path, speakable_text


API_BASE_URL = "https://texttospeech.googleapis.com/v1"
DEFAULT_VOICE_NAME = "en-US-Neural2-F"
DEFAULT_LANGUAGE_CODE = "en-US"
DEFAULT_SAMPLE_RATE_HZ = 24000
API_KEY_ENV_VAR = "GOOGLE_TTS_API_KEY"

_ENCODINGS = {
    "mp3": "MP3",
    "wav": "LINEAR16",
    "ogg": "OGG_OPUS",
}
_VOICE_TIERS = (
    ("Neural2", "Neural2"),
    ("Wavenet", "WaveNet"),
    ("WaveNet", "WaveNet"),
    ("Studio", "Studio"),
    ("Polyglot", "Polyglot"),
    ("Standard", "Standard"),
)
_GENDERS = {"MALE": "male", "FEMALE": "female", "NEUTRAL": "neutral"}


@dataclass(frozen=True, slots=True)
class GoogleSettings:
    """Audio settings sent with every Google synthesis request.

    Attributes:
        language_code: Fallback language when the voice name carries none.
        speaking_rate: Speed multiplier for untimed sections, 0.25-4.0.
        pitch: Semitone offset, -20.0 to 20.0.
        volume_gain_db: Gain in decibels, -96.0 to 16.0.
    """

    language_code: str = DEFAULT_LANGUAGE_CODE
    speaking_rate: float = 1.0
    pitch: float = 0.0
    volume_gain_db: float = 0.0

    def validate(self) -> None:
        """Validate setting ranges before requests are built."""

        if not GOOGLE_SPEED_RANGE.minimum <= self.speaking_rate <= GOOGLE_SPEED_RANGE.maximum:
            raise ValueError(
                f"`speaking_rate` must be between {GOOGLE_SPEED_RANGE.minimum} and "
                f"{GOOGLE_SPEED_RANGE.maximum}, got {self.speaking_rate}."
            )
        if not -20.0 <= self.pitch <= 20.0:
            raise ValueError(f"`pitch` must be between -20.0 and 20.0, got {self.pitch}.")
        if not -96.0 <= self.volume_gain_db <= 16.0:
            raise ValueError(
                f"`volume_gain_db` must be between -96.0 and 16.0, got {self.volume_gain_db}."
            )


def output_extension(audio_format: str) -> str:
    """Return the file extension matching the encoding used for `audio_format`."""

    normalized = audio_format.lower()
    return normalized if normalized in _ENCODINGS else "mp3"


def language_code_for_voice(voice_name: str, fallback: str) -> str:
    """Return `xx-YY` from names like `en-GB-Neural2-A`, else `fallback`."""

    if len(voice_name) >= 5 and voice_name[2] == "-":
        return voice_name[:5]
    return fallback


def voice_tier(voice_name: str) -> str:
    """Return the voice technology tier encoded in a Google voice name."""

    for marker, tier in _VOICE_TIERS:
        if marker in voice_name:
            return tier
    return "Standard"


class GoogleTTSProvider:
    """TTS provider backed by the Google Cloud Text-to-Speech REST API."""

    def __init__(
        self,
        api_key: str | None,
        settings: GoogleSettings | None = None,
        executor: RetryingRequestExecutor | None = None,
        base_url: str = API_BASE_URL,
    ) -> None:
        """Initialize API credentials, audio settings, and HTTP policy."""

        normalized_key = normalize_optional_string(api_key)
        if normalized_key is None:
            raise ProviderSetupError(
                "google",
                f"Google Cloud TTS API key not found. Set `{API_KEY_ENV_VAR}` or store one "
                "with `md2audio credentials --provider google --set-api-key`.",
            )
        self.api_key = normalized_key
        self.settings = settings if settings is not None else GoogleSettings()
        self.settings.validate()
        self.executor = (
            executor
            if executor is not None
            else RetryingRequestExecutor(provider_label="Google TTS")
        )
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        """Return the provider identifier."""

        return "google"

    @property
    def tempo_control(self) -> ControlRange:
        """Return the Google speaking-rate multiplier range."""

        return GOOGLE_SPEED_RANGE

    def output_extension(self, audio_format: str) -> str:
        """Return the extension matching the encoding chosen for `audio_format`."""

        return output_extension(audio_format)

    def generate(self, request: GenerateRequest, context: RunContext | None = None) -> Path:
        """Synthesize audio in the requested encoding and write the decoded bytes."""

        text = speakable_text(request)
        payload = self.synthesis_payload(text, request)
        logger.debug(
            "Google TTS API: synthesize (voice: {}, lang: {}, rate: {:.2f})",
            payload["voice"]["name"],
            payload["voice"]["languageCode"],
            payload["audioConfig"]["speakingRate"],
        )
        response = self.executor.execute(
            "POST",
            f"{self.base_url}/text:synthesize",
            context,
            params={"key": self.api_key},
            json=payload,
        )
        audio_bytes = _decode_audio_content(response)

        output_path = prepare_output_path(request.output_path, output_extension(request.format))
        output_path.write_bytes(audio_bytes)
        return output_path

    def list_voices(self, context: RunContext | None = None) -> list[Voice]:
        """Return all voices offered by the API."""

        logger.debug("Google TTS API: list voices")
        response = self.executor.execute(
            "GET",
            f"{self.base_url}/voices",
            context,
            params={"key": self.api_key},
        )
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteRequestError(
                "Google TTS returned an invalid voices payload.",
                status_code=response.status_code,
            ) from exc
        return parse_google_voices(payload)

    def synthesis_payload(self, text: str, request: GenerateRequest) -> dict[str, Any]:
        """Build the JSON body for `text:synthesize`."""

        voice_name = normalize_optional_string(request.voice_id) or DEFAULT_VOICE_NAME
        speaking_rate = self.settings.speaking_rate
        if request.target_duration is not None and request.target_duration > 0:
            speaking_rate = fit_speed_multiplier(
                text, request.target_duration, GOOGLE_SPEED_RANGE
            ).value

        return {
            "input": {"text": text},
            "voice": {
                "languageCode": language_code_for_voice(
                    voice_name, self.settings.language_code
                ),
                "name": voice_name,
            },
            "audioConfig": {
                "audioEncoding": _ENCODINGS[output_extension(request.format)],
                "speakingRate": speaking_rate,
                "pitch": self.settings.pitch,
                "volumeGainDb": self.settings.volume_gain_db,
                "sampleRateHertz": DEFAULT_SAMPLE_RATE_HZ,
            },
        }


def parse_google_voices(payload: Any) -> list[Voice]:
    """Map a `{"voices": [...]}` payload onto `Voice` records."""

    if not isinstance(payload, dict):
        raise RemoteRequestError("Google TTS voices response is not a JSON object.")

    voices: list[Voice] = []
    for item in payload.get("voices") or []:
        if not isinstance(item, dict):
            continue
        name = str(item.get("name", ""))
        language_codes = item.get("languageCodes") or []
        description = f"{voice_tier(name)} voice"
        sample_rate = item.get("naturalSampleRateHertz") or 0
        if isinstance(sample_rate, int) and sample_rate > 0:
            description += f" ({sample_rate} Hz)"
        voices.append(
            Voice(
                id=name,
                name=name,
                description=description,
                language=str(language_codes[0]) if language_codes else "",
                gender=_GENDERS.get(str(item.get("ssmlGender", "")).upper(), ""),
            )
        )
    return voices


def _decode_audio_content(response: Any) -> bytes:
    """Decode the base64 `audioContent` field of a synthesis response."""

    try:
        payload = response.json()
        audio_content = payload["audioContent"]
        audio_bytes = base64.b64decode(audio_content, validate=True)
    except (ValueError, KeyError, TypeError, binascii.Error) as exc:
        raise RemoteRequestError(
            "Google TTS response is missing decodable `audioContent`.",
            status_code=getattr(response, "status_code", None),
        ) from exc
    if not audio_bytes:
        raise RemoteRequestError("Google TTS returned an empty audio payload.")
    return audio_bytes
