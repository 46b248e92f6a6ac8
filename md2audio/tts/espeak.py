"""Linux `espeak-ng`/`espeak` synthesizer backend.

Responsibilities:
- Render speech to WAV with `espeak-ng`, falling back to classic `espeak`.
- Map common macOS voice names onto espeak language voices.
- Transcode to other formats with `ffmpeg` and parse `--voices` listings.
"""

from __future__ import annotations

from pathlib import Path
import platform

from loguru import logger

from ..errors import ProviderSetupError, SynthesisError
from ..models.datatypes import ControlRange, GenerateRequest, Voice
from ..runtime_context import RunContext
from ..runtime_tools import is_executable_available, resolve_executable
from . import audio_tools
from .duration import ESPEAK_RATE_RANGE
from .provider import prepare_output_path, speakable_text


DEFAULT_ESPEAK_VOICE = "en-us"
_ESPEAK_COMMANDS = ("espeak-ng", "espeak")
_VOICE_NAME_MAP = {
    "Kate": "en-gb",
    "Daniel": "en-gb",
    "Oliver": "en-gb",
    "Serena": "en-gb",
    "Samantha": "en-us",
    "Alex": "en-us",
    "Tom": "en-us",
    "Fiona": "en-us",
    "Karen": "en-au",
    "Veena": "en-in",
    "Thomas": "fr",
    "Anna": "de",
    "Monica": "es",
    "Alice": "it",
    "Joana": "pt-pt",
}


def map_voice_to_espeak(voice: str) -> str:
    """Return the espeak voice for a macOS voice name, else `voice` unchanged.

    Identifiers reported by `--voices` (for example `English_(Great_Britain)`)
    and language codes are passed to `-v` as given; only a blank voice falls
    back to `DEFAULT_ESPEAK_VOICE`.
    """

    normalized = voice.strip()
    if not normalized:
        return DEFAULT_ESPEAK_VOICE
    return _VOICE_NAME_MAP.get(normalized, normalized)


class EspeakProvider:
    """TTS provider backed by `espeak-ng` or `espeak` on Linux."""

    def __init__(self) -> None:
        """Verify the platform and pick the first available espeak command."""

        if platform.system() != "Linux":
            raise ProviderSetupError("espeak", "The espeak provider is only available on Linux.")
        command = next(
            (candidate for candidate in _ESPEAK_COMMANDS if is_executable_available(candidate)),
            None,
        )
        if command is None:
            raise ProviderSetupError(
                "espeak",
                "Neither `espeak-ng` nor `espeak` was found. "
                "Install with: sudo apt install espeak-ng",
            )
        self.command = resolve_executable(command)

    @property
    def name(self) -> str:
        """Return the provider identifier."""

        return "espeak"

    @property
    def tempo_control(self) -> ControlRange:
        """Return the `espeak -s` words-per-minute range."""

        return ESPEAK_RATE_RANGE

    def output_extension(self, audio_format: str) -> str:
        """Return the requested format, or `wav` when none is given."""

        return audio_format.lower() or "wav"

    def generate(self, request: GenerateRequest, context: RunContext | None = None) -> Path:
        """Render a WAV clip and transcode it when another format is requested."""

        text = speakable_text(request)
        rate = request.rate if request.rate is not None else int(ESPEAK_RATE_RANGE.default)
        voice = map_voice_to_espeak(request.voice_id)
        wav_path = prepare_output_path(request.output_path, "wav")

        logger.debug("espeak: generating {} with voice {} at {} wpm", wav_path, voice, rate)
        audio_tools.run_command(
            [self.command, "-v", voice, "-s", str(rate), "-w", str(wav_path), text],
            context,
        )

        audio_format = request.format.lower()
        if audio_format in {"", "wav"}:
            return wav_path
        if not is_executable_available("ffmpeg"):
            raise SynthesisError(
                f"Audio was created at `{wav_path}` but `ffmpeg` is required to convert "
                f"it to {audio_format}. Install with: sudo apt install ffmpeg"
            )
        return audio_tools.convert_with_ffmpeg(
            wav_path,
            wav_path.with_suffix(f".{audio_format}"),
            audio_format,
            context,
        )

    def list_voices(self, context: RunContext | None = None) -> list[Voice]:
        """Return voices reported by `--voices`."""

        output = audio_tools.run_command([self.command, "--voices"], context)
        return parse_espeak_voices(output)


def parse_espeak_voices(output: str) -> list[Voice]:
    """Parse the `Pty Language Age/Gender VoiceName File ...` table, skipping the header."""

    voices: list[Voice] = []
    for line in output.splitlines()[1:]:
        fields = line.split()
        if len(fields) < 4:
            continue
        language, age_gender, voice_name = fields[1], fields[2], fields[3]
        if "M" in age_gender:
            gender = "male"
        elif "F" in age_gender:
            gender = "female"
        else:
            gender = ""
        if gender:
            description = f"{gender.capitalize()} {language} voice"
        else:
            description = f"{language} voice"
        voices.append(
            Voice(
                id=voice_name,
                name=voice_name,
                description=description,
                language=language,
                gender=gender,
            )
        )
    return voices
