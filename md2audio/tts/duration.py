"""Duration fitting for timed sections.

Responsibilities:
- Translate a target clip duration into the backend's tempo control.
- Clamp infeasible targets into the backend range and explain the clamp.

Two control kinds exist: words-per-minute rates (`say`, `espeak`) and speed
multipliers (ElevenLabs, Google). Both are parameterized by a `ControlRange`.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from ..models.datatypes import ControlRange


RATE_ADJUSTMENT_FACTOR = 0.95
NATURAL_WORDS_PER_MINUTE = 150.0

SAY_RATE_RANGE = ControlRange(minimum=90, maximum=360, default=180, unit="wpm")
ESPEAK_RATE_RANGE = ControlRange(minimum=90, maximum=360, default=180, unit="wpm")
ELEVENLABS_SPEED_RANGE = ControlRange(minimum=0.7, maximum=1.2, default=1.0, unit="x")
GOOGLE_SPEED_RANGE = ControlRange(minimum=0.25, maximum=4.0, default=1.0, unit="x")


@dataclass(frozen=True, slots=True)
class FitResult:
    """Fitted control value and the clamp warning, if one was raised."""

    value: float
    warning: str | None = None

    @property
    def clamped(self) -> bool:
        """Return whether the value was clamped into the control range."""

        return self.warning is not None


def count_words(text: str) -> int:
    """Count whitespace-separated tokens."""

    return len(text.split())


def required_words_per_minute(word_count: int, target_seconds: float) -> float:
    """Return the rate that speaks `word_count` words in `target_seconds`, or 0."""

    if target_seconds <= 0:
        return 0.0
    return word_count / (target_seconds / 60.0)


def fit_speaking_rate(
    text: str,
    target_seconds: float,
    control: ControlRange = SAY_RATE_RANGE,
) -> FitResult:
    """Compute an integer words-per-minute rate that fits `text` into `target_seconds`.

    Local synthesizers speak slightly faster than their nominal rate, so the
    required rate is scaled by `RATE_ADJUSTMENT_FACTOR` before clamping.
    """

    word_count = count_words(text)
    required_wpm = required_words_per_minute(word_count, target_seconds)
    if word_count == 0 or required_wpm <= 0:
        return FitResult(value=int(control.default))

    adjusted = int(required_wpm * RATE_ADJUSTMENT_FACTOR)
    rate = int(control.clamp(adjusted))
    warning: str | None = None
    if adjusted > control.maximum:
        warning = (
            f"Required rate ({required_wpm:.0f} wpm) exceeds maximum, "
            f"capping at {int(control.maximum)} wpm."
        )
    elif adjusted < control.minimum:
        warning = (
            f"Required rate ({required_wpm:.0f} wpm) is below minimum, "
            f"raising to {int(control.minimum)} wpm."
        )
    if warning is not None:
        logger.warning(warning)
    return FitResult(value=rate, warning=warning)


def fit_speed_multiplier(
    text: str,
    target_seconds: float,
    control: ControlRange,
) -> FitResult:
    """Compute a speed multiplier that fits `text` into `target_seconds`.

    The natural duration assumes `NATURAL_WORDS_PER_MINUTE`; the multiplier is
    the natural duration divided by the target.
    """

    word_count = count_words(text)
    if word_count == 0 or target_seconds <= 0:
        return FitResult(value=control.default)

    natural_seconds = word_count / NATURAL_WORDS_PER_MINUTE * 60.0
    speed = natural_seconds / target_seconds
    warning: str | None = None
    if speed > control.maximum:
        warning = (
            f"Target duration {target_seconds:.1f}s is too short for {word_count} words "
            f"(needs {speed:.2f}x); using maximum speed {control.maximum:.2f}x, "
            "audio will run longer than the target."
        )
    elif speed < control.minimum:
        warning = (
            f"Target duration {target_seconds:.1f}s is too long for {word_count} words "
            f"(needs {speed:.2f}x); using minimum speed {control.minimum:.2f}x, "
            "audio will run shorter than the target."
        )
    if warning is not None:
        logger.warning(warning)
    return FitResult(value=control.clamp(speed), warning=warning)
