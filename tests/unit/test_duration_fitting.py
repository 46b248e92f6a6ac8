"""Unit tests for speaking-rate and speed-multiplier duration fitting."""

from __future__ import annotations

import pytest

from md2audio.tts.duration import (
    ELEVENLABS_SPEED_RANGE,
    ESPEAK_RATE_RANGE,
    GOOGLE_SPEED_RANGE,
    SAY_RATE_RANGE,
    count_words,
    fit_speaking_rate,
    fit_speed_multiplier,
    required_words_per_minute,
)


def _words(count: int) -> str:
    """Return `count` space-separated placeholder words."""

    return " ".join(["word"] * count)


def test_fit_speaking_rate_applies_adjustment_factor() -> None:
    """Ninety words in thirty seconds should need 180 wpm, adjusted down to 171."""

    result = fit_speaking_rate(_words(90), 30.0)

    assert result.value == 171
    assert result.warning is None
    assert result.clamped is False


def test_fit_speaking_rate_raises_slow_targets_to_minimum() -> None:
    """Very long targets should clamp to the minimum rate with a warning."""

    result = fit_speaking_rate(_words(5), 60.0)

    assert result.value == 90
    assert result.warning is not None
    assert "below minimum" in result.warning
    assert "90 wpm" in result.warning


def test_fit_speaking_rate_caps_fast_targets_at_maximum() -> None:
    """Infeasibly short targets should cap at the maximum rate with a warning."""

    result = fit_speaking_rate(_words(200), 10.0, ESPEAK_RATE_RANGE)

    assert result.value == 360
    assert result.warning is not None
    assert "exceeds maximum" in result.warning
    assert "capping at 360 wpm" in result.warning


def test_fit_speaking_rate_does_not_warn_when_truncation_stays_in_range() -> None:
    """379 wpm adjusts to 360.05, which truncates to the maximum without clamping."""

    result = fit_speaking_rate(_words(379), 60.0, ESPEAK_RATE_RANGE)

    assert result.value == 360
    assert result.warning is None
    assert result.clamped is False


@pytest.mark.parametrize(
    ("word_count", "target_seconds"),
    [(1, 0.5), (3, 7.0), (40, 12.5), (150, 60.0), (500, 5.0), (12, 300.0)],
)
def test_fit_speaking_rate_always_stays_in_range(word_count: int, target_seconds: float) -> None:
    """Every fitted rate should be an integer within the control range."""

    result = fit_speaking_rate(_words(word_count), target_seconds)

    assert isinstance(result.value, int)
    assert SAY_RATE_RANGE.minimum <= result.value <= SAY_RATE_RANGE.maximum


@pytest.mark.parametrize(("text", "target_seconds"), [("", 10.0), ("some words", 0.0)])
def test_fit_speaking_rate_falls_back_to_default(text: str, target_seconds: float) -> None:
    """Empty text or non-positive targets should return the default rate."""

    result = fit_speaking_rate(text, target_seconds)

    assert result.value == 180
    assert result.warning is None


def test_fit_speed_multiplier_uses_natural_rate() -> None:
    """Thirty words in twelve seconds at 150 wpm natural pace should need 1.0x."""

    result = fit_speed_multiplier(_words(30), 12.0, ELEVENLABS_SPEED_RANGE)

    assert result.value == pytest.approx(1.0)
    assert result.warning is None


def test_fit_speed_multiplier_caps_short_targets() -> None:
    """Targets too short for the text should cap at maximum speed and say so."""

    result = fit_speed_multiplier(_words(100), 10.0, ELEVENLABS_SPEED_RANGE)

    assert result.value == pytest.approx(1.2)
    assert result.warning is not None
    assert "longer than the target" in result.warning


def test_fit_speed_multiplier_floors_long_targets() -> None:
    """Targets too long for the text should floor at minimum speed and say so."""

    result = fit_speed_multiplier(_words(2), 120.0, GOOGLE_SPEED_RANGE)

    assert result.value == pytest.approx(0.25)
    assert result.warning is not None
    assert "shorter than the target" in result.warning


def test_fit_speed_multiplier_falls_back_to_default() -> None:
    """Zero words should return the control default without a warning."""

    result = fit_speed_multiplier("", 5.0, GOOGLE_SPEED_RANGE)

    assert result.value == 1.0
    assert result.clamped is False


def test_word_counting_helpers() -> None:
    """Word counting should split on any whitespace and rate math should guard zero."""

    assert count_words("  one\ttwo\nthree  ") == 3
    assert required_words_per_minute(30, 0.0) == 0.0
    assert required_words_per_minute(30, 15.0) == pytest.approx(120.0)
