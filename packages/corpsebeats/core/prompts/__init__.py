"""Prompt engineering: round-aware enhancement, caption merging, validation."""

from corpsebeats.core.prompts.enhancer import (
    MAX_PROMPT_LENGTH,
    MIN_PROMPT_LENGTH,
    build_video_prompt,
    combine_captions,
    enhance,
    enhance_audio_prompt,
    enhance_image_prompt,
    truncate_prompt,
    validate_prompt,
)

__all__ = [
    "MAX_PROMPT_LENGTH",
    "MIN_PROMPT_LENGTH",
    "enhance",
    "enhance_audio_prompt",
    "enhance_image_prompt",
    "combine_captions",
    "truncate_prompt",
    "validate_prompt",
    "build_video_prompt",
]
