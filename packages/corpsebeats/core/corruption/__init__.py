"""Corruption table: per-round modifiers, display metadata, and intensity."""

from corpsebeats.core.corruption.models import (
    MAX_ROUND,
    MIN_ROUND,
    ROUND_COUNT,
    CorruptionProfile,
    ModifierKind,
    clamp_round,
)
from corpsebeats.core.corruption.table import (
    all_profiles,
    corruption_level,
    modifiers_for,
    profile_for,
)

__all__ = [
    "MIN_ROUND",
    "MAX_ROUND",
    "ROUND_COUNT",
    "CorruptionProfile",
    "ModifierKind",
    "clamp_round",
    "profile_for",
    "modifiers_for",
    "corruption_level",
    "all_profiles",
]
