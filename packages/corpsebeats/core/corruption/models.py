"""Corruption data models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

MIN_ROUND = 0
MAX_ROUND = 3
ROUND_COUNT = MAX_ROUND - MIN_ROUND + 1


class ModifierKind(str, Enum):
    """Which generation role a modifier phrase is written for."""

    AUDIO = "audio"
    IMAGE = "image"


def clamp_round(value: int) -> int:
    """Clamp any integer to the valid round range [0, 3].

    Example:
        >>> clamp_round(-2)
        0
        >>> clamp_round(7)
        3
    """
    return max(MIN_ROUND, min(MAX_ROUND, int(value)))


class CorruptionProfile(BaseModel):
    """Static parameterization of one corruption round.

    Args:
        round: Round index (0-3)
        name: Display name ("Innocent" ... "Horror")
        color_token: Theme color identifier used by the UI
        description: Short description of the round's aesthetic
        intensity: Corruption intensity, one of 0.0, 0.33, 0.66, 1.0
        audio_modifiers: Phrase appended to audio prompts
        image_modifiers: Phrase appended to image prompts
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    round: int = Field(ge=MIN_ROUND, le=MAX_ROUND)
    name: str
    color_token: str
    description: str
    intensity: float = Field(ge=0.0, le=1.0)
    audio_modifiers: str
    image_modifiers: str

    def modifiers(self, kind: ModifierKind) -> str:
        """Return the modifier phrase for a generation role."""
        if kind is ModifierKind.AUDIO:
            return self.audio_modifiers
        return self.image_modifiers
