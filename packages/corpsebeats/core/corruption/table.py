"""Static round -> profile lookup.

Round 0: Innocent baseline (pastel, dreamy, soft)
Round 1: Uneasy shift (faded, slightly off)
Round 2: Ominous darkness (dark, menacing, brooding)
Round 3: Full horror (nightmarish, grotesque, disturbing)
"""

from __future__ import annotations

from types import MappingProxyType

from corpsebeats.core.corruption.models import CorruptionProfile, ModifierKind, clamp_round

_PROFILES = MappingProxyType(
    {
        0: CorruptionProfile(
            round=0,
            name="Innocent",
            color_token="pastel-pink",
            description="Soft, dreamy, innocent baseline",
            intensity=0.0,
            audio_modifiers="cheerful, bright, innocent",
            image_modifiers="pastel colors, soft lighting, dreamy",
        ),
        1: CorruptionProfile(
            round=1,
            name="Uneasy",
            color_token="dusty-rose",
            description="Slightly off, faded nostalgia",
            intensity=0.33,
            audio_modifiers="unsettling, slightly off-key, uneasy",
            image_modifiers="faded colors, dim lighting, eerie",
        ),
        2: CorruptionProfile(
            round=2,
            name="Ominous",
            color_token="bruised-plum",
            description="Dark, brooding, menacing atmosphere",
            intensity=0.66,
            audio_modifiers="dark, dissonant, ominous",
            image_modifiers="dark shadows, bruised colors, menacing",
        ),
        3: CorruptionProfile(
            round=3,
            name="Horror",
            color_token="blood-red",
            description="Nightmare horror, maximum corruption",
            intensity=1.0,
            audio_modifiers="horrifying, nightmarish, disturbing",
            image_modifiers="blood red, pitch black, grotesque",
        ),
    }
)


def profile_for(round_index: int) -> CorruptionProfile:
    """Get the corruption profile for a round.

    Total over all integers: out-of-range input is clamped first.

    Example:
        >>> profile_for(1).name
        'Uneasy'
        >>> profile_for(99).name
        'Horror'
    """
    return _PROFILES[clamp_round(round_index)]


def modifiers_for(round_index: int, kind: ModifierKind) -> str:
    """Get the modifier phrase for a round and generation role."""
    return profile_for(round_index).modifiers(kind)


def corruption_level(round_index: int) -> float:
    """Get the corruption intensity (0.0 innocent .. 1.0 horror) for a round."""
    return profile_for(round_index).intensity


def all_profiles() -> list[CorruptionProfile]:
    """All profiles in round order."""
    return [_PROFILES[i] for i in sorted(_PROFILES)]
