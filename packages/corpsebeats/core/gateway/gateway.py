"""Inference gateway: one logical provider call per operation, with retry.

Every operation is wrapped in `with_retry`; only the final exhausted failure
leaves the gateway. Each attempt may be billed by the provider.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
import logging
import re
from typing import Any

from corpsebeats.core.api.replicate import ReplicateClient
from corpsebeats.core.config.models import AppConfig, ModelsConfig
from corpsebeats.core.errors import ArgumentMismatchError, ConfigurationError, UnknownError
from corpsebeats.core.gateway.base import (
    AudioOutput,
    CaptionOutput,
    ImageOutput,
    InferenceBackend,
    VideoOutput,
)
from corpsebeats.core.gateway.retry import BackoffPolicy, with_retry
from corpsebeats.core.prompts import build_video_prompt
from corpsebeats.core.utils.logging import log_performance

logger = logging.getLogger(__name__)

_CAPTION_PREFIX = re.compile(r"^\s*caption\s*:\s*", re.IGNORECASE)
_CONTEXT_PREVIEW = 50


def _preview(text: str) -> str:
    return text if len(text) <= _CONTEXT_PREVIEW else text[:_CONTEXT_PREVIEW] + "..."


def _first_url(output: Any, what: str) -> str:
    """Normalize provider output (string, list of strings, or file object) to one URL."""
    if isinstance(output, (list, tuple)):
        output = output[0] if output else None
    if isinstance(output, dict):
        output = output.get("url")
    if not isinstance(output, str) or not output.strip():
        raise UnknownError(f"{what} returned no output")
    return output.strip()


def normalize_caption(output: Any) -> str:
    """Strip the 'Caption:' label some captioning models prepend.

    Example:
        >>> normalize_caption("Caption: a dog on a beach")
        'a dog on a beach'
    """
    if isinstance(output, (list, tuple)):
        output = " ".join(str(o) for o in output)
    if not isinstance(output, str):
        raise UnknownError("Captioning returned no output")
    caption = _CAPTION_PREFIX.sub("", output).strip()
    if not caption:
        raise UnknownError("Captioning returned an empty caption")
    return caption


class InferenceGateway:
    """Generation operations against an inference backend.

    Args:
        backend: Provider access (ReplicateClient in production, fakes in tests)
        models: Model references and fixed inputs
        retry: Retry policy applied to every operation
        sleep: Awaitable sleep used for backoff (injectable for tests)
    """

    def __init__(
        self,
        backend: InferenceBackend,
        *,
        models: ModelsConfig | None = None,
        retry: BackoffPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._backend = backend
        self._models = models or ModelsConfig()
        self._retry = retry or BackoffPolicy()
        self._sleep = sleep

    @property
    def backend(self) -> InferenceBackend:
        return self._backend

    async def aclose(self) -> None:
        """Close the backend if it holds resources."""
        aclose = getattr(self._backend, "aclose", None)
        if aclose is not None:
            await aclose()

    async def _call(self, operation: Callable[[], Awaitable[Any]], context: str) -> Any:
        return await with_retry(operation, context, self._retry, sleep=self._sleep)

    @log_performance
    async def synthesize_audio(self, prompt: str, intensity: float = 0.0) -> AudioOutput:
        """Synthesize a music clip from a prompt."""
        cfg = self._models.audio
        model_input = {
            "prompt": prompt,
            "duration": cfg.duration_s,
            "model_version": cfg.model_version,
            "output_format": cfg.output_format,
        }

        async def attempt() -> str:
            return _first_url(await self._backend.run(cfg.ref, model_input), "Audio generation")

        url = await self._call(attempt, f'Audio generation for prompt: "{_preview(prompt)}"')
        return AudioOutput(audio_ref=url)

    @log_performance
    async def synthesize_image(self, prompt: str, intensity: float = 0.0) -> ImageOutput:
        """Synthesize a square image; low intensity uses fewer refinement steps."""
        cfg = self._models.image
        steps = cfg.fast_steps if intensity < cfg.fast_steps_below_intensity else cfg.full_steps
        model_input = {
            "prompt": prompt,
            "num_inference_steps": steps,
            "aspect_ratio": cfg.aspect_ratio,
        }

        async def attempt() -> str:
            return _first_url(await self._backend.run(cfg.ref, model_input), "Image generation")

        url = await self._call(attempt, f'Image generation for prompt: "{_preview(prompt)}"')
        return ImageOutput(image_ref=url)

    @log_performance
    async def caption_image(self, image_ref: str) -> CaptionOutput:
        cfg = self._models.caption
        model_input = {"image": image_ref, "task": cfg.task}

        async def attempt() -> str:
            return normalize_caption(await self._backend.run(cfg.ref, model_input))

        caption = await self._call(attempt, f"Image captioning for: {image_ref}")
        return CaptionOutput(caption=caption)

    @log_performance
    async def synthesize_video(
        self, image_refs: Sequence[str], captions: Sequence[str]
    ) -> VideoOutput:
        """Animate the last (most corrupted) image/caption pair into one video.

        Raises:
            ArgumentMismatchError: Arrays differ in length or are empty; no call is made
        """
        if len(image_refs) != len(captions):
            raise ArgumentMismatchError("imageUrls and captions arrays must have the same length")
        if not image_refs:
            raise ArgumentMismatchError("At least one image is required for video generation")

        cfg = self._models.video
        final_caption = captions[-1]
        model_input = {
            "prompt": build_video_prompt(final_caption),
            "start_image": image_refs[-1],
            "mode": cfg.mode,
            "duration": cfg.duration_s,
        }

        async def attempt() -> str:
            return _first_url(await self._backend.run(cfg.ref, model_input), "Video generation")

        url = await self._call(
            attempt, f'Video generation from final horror image: "{_preview(final_caption)}"'
        )
        return VideoOutput(video_ref=url)

    async def health_check(self) -> dict[str, Any]:
        """Make one cheap authenticated call; no retries.

        Returns:
            {"success": True, "message": ..., "modelExample": <first model name>}
        """
        models = await self._backend.list_models()
        example = (models[0].get("name") if models else None) or "No models found"
        return {
            "success": True,
            "message": "API connection successful",
            "modelExample": example,
        }


def create_gateway(config: AppConfig, backend: InferenceBackend | None = None) -> InferenceGateway:
    """Build a gateway from configuration.

    Called once at process start; the result is passed to whoever needs it.

    Raises:
        ConfigurationError: No provider token is configured and no backend was given
    """
    if backend is None:
        if not config.provider.has_token:
            raise ConfigurationError("REPLICATE_API_TOKEN is not set")
        backend = ReplicateClient(config.provider)

    return InferenceGateway(
        backend,
        models=config.models,
        retry=BackoffPolicy.from_config(config.retry),
    )
