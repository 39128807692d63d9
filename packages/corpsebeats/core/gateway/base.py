"""Base types and protocols for inference gateways."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class AudioOutput:
    """Address of a synthesized audio clip."""

    audio_ref: str


@dataclass(frozen=True)
class ImageOutput:
    """Address of a synthesized image."""

    image_ref: str


@dataclass(frozen=True)
class CaptionOutput:
    """Caption describing an image."""

    caption: str


@dataclass(frozen=True)
class VideoOutput:
    """Address of a synthesized video."""

    video_ref: str


class InferenceBackend(Protocol):
    """Raw access to the generative-media provider.

    Implementations do not retry; the gateway owns the retry policy.
    """

    async def run(self, model_ref: str, input: dict[str, Any]) -> Any:
        """Run a model to completion and return its raw output."""
        ...

    async def list_models(self) -> list[dict[str, Any]]:
        """Lightweight authenticated call used for health checks."""
        ...


class Gateway(Protocol):
    """The four generation operations the orchestrator depends on.

    Implemented by InferenceGateway (direct provider access) and
    RemoteGateway (through the backend HTTP surface).
    """

    async def synthesize_audio(self, prompt: str, intensity: float = 0.0) -> AudioOutput: ...

    async def synthesize_image(self, prompt: str, intensity: float = 0.0) -> ImageOutput: ...

    async def caption_image(self, image_ref: str) -> CaptionOutput: ...

    async def synthesize_video(
        self, image_refs: Sequence[str], captions: Sequence[str]
    ) -> VideoOutput: ...
