"""Tests for the corruption table."""

from __future__ import annotations

import pydantic
import pytest

from corpsebeats.core.corruption import (
    MAX_ROUND,
    MIN_ROUND,
    ROUND_COUNT,
    ModifierKind,
    all_profiles,
    clamp_round,
    corruption_level,
    modifiers_for,
    profile_for,
)


def test_four_rounds() -> None:
    assert (MIN_ROUND, MAX_ROUND, ROUND_COUNT) == (0, 3, 4)
    assert [p.round for p in all_profiles()] == [0, 1, 2, 3]


@pytest.mark.parametrize(
    ("round_index", "name", "intensity"),
    [
        (0, "Innocent", 0.0),
        (1, "Uneasy", 0.33),
        (2, "Ominous", 0.66),
        (3, "Horror", 1.0),
    ],
)
def test_profiles(round_index: int, name: str, intensity: float) -> None:
    profile = profile_for(round_index)
    assert profile.name == name
    assert profile.intensity == intensity
    assert corruption_level(round_index) == intensity


def test_intensity_increases_with_round() -> None:
    levels = [corruption_level(r) for r in range(ROUND_COUNT)]
    assert levels == sorted(levels)
    assert levels[0] == 0.0
    assert levels[-1] == 1.0


@pytest.mark.parametrize(("value", "expected"), [(-5, 0), (-1, 0), (2, 2), (4, 3), (99, 3)])
def test_out_of_range_rounds_are_clamped(value: int, expected: int) -> None:
    assert clamp_round(value) == expected
    assert profile_for(value) == profile_for(expected)


def test_modifiers_per_role() -> None:
    assert modifiers_for(0, ModifierKind.AUDIO) == "cheerful, bright, innocent"
    assert modifiers_for(0, ModifierKind.IMAGE) == "pastel colors, soft lighting, dreamy"
    assert modifiers_for(3, ModifierKind.AUDIO) == "horrifying, nightmarish, disturbing"
    assert modifiers_for(3, ModifierKind.IMAGE) == "blood red, pitch black, grotesque"


def test_audio_and_image_modifiers_differ_every_round() -> None:
    for profile in all_profiles():
        assert profile.audio_modifiers != profile.image_modifiers
        assert profile.color_token
        assert profile.description


def test_profiles_are_immutable() -> None:
    profile = profile_for(0)
    with pytest.raises(pydantic.ValidationError):
        profile.name = "Changed"  # type: ignore[misc]
