"""Request bodies for the HTTP surface.

Validation runs on the raw JSON object so checks happen in a fixed order and
each failure carries a single human-readable message.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, model_validator

from corpsebeats.core.prompts import MAX_PROMPT_LENGTH, validate_prompt

MAX_VIDEO_IMAGES = 4


def is_valid_url(value: str) -> bool:
    """Absolute URL with a scheme and a host (or a data: URI)."""
    parsed = urlparse(value.strip())
    if not parsed.scheme:
        return False
    return parsed.scheme == "data" or bool(parsed.netloc)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _as_mapping(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class CaptionImageRequest(_Request):
    image_url: str = Field(alias="imageUrl")

    @model_validator(mode="before")
    @classmethod
    def check_image_url(cls, data: Any) -> Any:
        data = _as_mapping(data)
        image_url = data.get("imageUrl", data.get("image_url"))
        if not _non_empty_str(image_url):
            raise ValueError("Image URL is required and must be a non-empty string")
        if not is_valid_url(image_url):
            raise ValueError("Invalid image URL format")
        return data


class _PromptRequest(_Request):
    prompt: str
    intensity: float = Field(default=0.0, ge=0.0, le=1.0)


class GenerateAudioRequest(_PromptRequest):
    @model_validator(mode="before")
    @classmethod
    def check_prompt(cls, data: Any) -> Any:
        data = _as_mapping(data)
        prompt = data.get("prompt")
        if not _non_empty_str(prompt):
            raise ValueError("Prompt is required and must be a non-empty string")
        if len(prompt) > MAX_PROMPT_LENGTH:
            raise ValueError(f"Prompt must be less than {MAX_PROMPT_LENGTH} characters")
        return data


class GenerateImageRequest(_PromptRequest):
    @model_validator(mode="before")
    @classmethod
    def check_prompt(cls, data: Any) -> Any:
        data = _as_mapping(data)
        prompt = data.get("prompt")
        if not isinstance(prompt, str):
            raise ValueError("Invalid prompt: must be a non-empty string")
        if not prompt.strip():
            raise ValueError("Invalid prompt: cannot be empty")
        return data


class GenerateVideoRequest(_Request):
    image_urls: list[str] = Field(alias="imageUrls")
    captions: list[str]

    @model_validator(mode="before")
    @classmethod
    def check_pairs(cls, data: Any) -> Any:
        data = _as_mapping(data)
        image_urls = data.get("imageUrls", data.get("image_urls"))
        captions = data.get("captions")

        if not isinstance(image_urls, list) or not image_urls:
            raise ValueError("imageUrls is required and must be a non-empty array")
        if not isinstance(captions, list) or not captions:
            raise ValueError("captions is required and must be a non-empty array")
        if len(image_urls) != len(captions):
            raise ValueError("imageUrls and captions arrays must have the same length")
        if len(image_urls) > MAX_VIDEO_IMAGES:
            raise ValueError(f"Maximum {MAX_VIDEO_IMAGES} images allowed for video generation")

        for image_url in image_urls:
            if not _non_empty_str(image_url):
                raise ValueError("All imageUrls must be non-empty strings")
            if not is_valid_url(image_url):
                raise ValueError(f"Invalid URL format: {image_url}")

        for caption in captions:
            if not _non_empty_str(caption):
                raise ValueError("All captions must be non-empty strings")
            if len(caption) > MAX_PROMPT_LENGTH:
                raise ValueError(f"Each caption must be less than {MAX_PROMPT_LENGTH} characters")
        return data


class GenerateCorpseRequest(_Request):
    prompt: str
    samples_per_round: int | None = Field(default=None, alias="samplesPerRound", ge=1, le=16)

    @model_validator(mode="before")
    @classmethod
    def check_prompt(cls, data: Any) -> Any:
        data = _as_mapping(data)
        if not validate_prompt(data.get("prompt")):
            raise ValueError("Prompt must be 3-500 characters and contain at least one letter")
        return data
