"""Prompt enhancement for audio and image generation.

Combines a base prompt (the user's text in round 0, the previous round's
caption afterwards) with the round's corruption modifiers. All prompts are
kept under MAX_PROMPT_LENGTH characters for model compatibility.
"""

from __future__ import annotations

from collections.abc import Iterable
import re

from corpsebeats.core.corruption import ModifierKind, modifiers_for

MAX_PROMPT_LENGTH = 500
MIN_PROMPT_LENGTH = 3

_TRAILING_JUNK = ", \t\r\n"
_HAS_LETTER = re.compile(r"[A-Za-z]")

_VIDEO_PROMPT_SUFFIX = (
    "Nightmarish horror transformation with subtle unsettling movement. "
    "Dark atmospheric cinematography with eerie depth and ominous mood."
)


def truncate_prompt(prompt: str, max_length: int = MAX_PROMPT_LENGTH) -> str:
    """Truncate a prompt at the last word boundary at or before max_length.

    A boundary is a space or a comma. The result never ends with a comma or
    whitespace. Input with no boundary at all is hard-cut at max_length.

    Args:
        prompt: Prompt text
        max_length: Maximum allowed character count

    Returns:
        Prompt of at most max_length characters

    Example:
        >>> truncate_prompt("cheerful bright innocent playful whimsical", 30)
        'cheerful bright innocent'
    """
    if len(prompt) <= max_length:
        return prompt

    truncated = prompt[:max_length]
    cutoff = max(truncated.rfind(" "), truncated.rfind(","))

    if cutoff <= 0:
        return truncated.strip(_TRAILING_JUNK)

    result = truncated[:cutoff].rstrip(_TRAILING_JUNK)
    return result or truncated.strip(_TRAILING_JUNK)


def enhance(base: str, round_index: int, kind: ModifierKind) -> str:
    """Append the round's modifiers for a generation role to a base prompt.

    Args:
        base: User prompt (round 0) or previous caption (rounds 1-3); validated upstream
        round_index: Corruption round, clamped to 0-3
        kind: Generation role (audio or image)

    Returns:
        "{base}, {modifiers}", truncated to MAX_PROMPT_LENGTH at a word boundary

    Example:
        >>> enhance("lo-fi study beats", 0, ModifierKind.AUDIO)
        'lo-fi study beats, cheerful, bright, innocent'
    """
    modifiers = modifiers_for(round_index, kind)
    return truncate_prompt(f"{base.strip()}, {modifiers}", MAX_PROMPT_LENGTH)


def enhance_audio_prompt(base: str, round_index: int) -> str:
    """Enhance a prompt for the audio role."""
    return enhance(base, round_index, ModifierKind.AUDIO)


def enhance_image_prompt(base: str, round_index: int) -> str:
    """Enhance a prompt for the image role."""
    return enhance(base, round_index, ModifierKind.IMAGE)


def combine_captions(captions: Iterable[str]) -> str:
    """Join non-empty captions with ", " under the same length limit.

    Example:
        >>> combine_captions(["  ", "a"])
        'a'
        >>> combine_captions([])
        ''
    """
    cleaned = [c.strip() for c in captions if c and c.strip()]
    if not cleaned:
        return ""
    return truncate_prompt(", ".join(cleaned), MAX_PROMPT_LENGTH)


def validate_prompt(prompt: str | None) -> bool:
    """Check a prompt is usable as generation input.

    Valid when the trimmed text is 3-500 characters long and contains at
    least one ASCII letter.

    Example:
        >>> validate_prompt("ok")
        False
        >>> validate_prompt("dreamy electronic music")
        True
    """
    if not isinstance(prompt, str):
        return False
    trimmed = prompt.strip()
    if not MIN_PROMPT_LENGTH <= len(trimmed) <= MAX_PROMPT_LENGTH:
        return False
    return bool(_HAS_LETTER.search(trimmed))


def build_video_prompt(caption: str) -> str:
    """Build the video prompt from the final (most corrupted) caption."""
    return f"{caption.strip()}. {_VIDEO_PROMPT_SUFFIX}"
