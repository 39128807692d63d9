"""Shared pytest fixtures for corpsebeats tests."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
import itertools
from typing import Any

import pytest

from corpsebeats.core.chain import CorpseChain, GenerationSample, RoundResult
from corpsebeats.core.config.models import ChainConfig, ExecutionMode, ModelsConfig
from corpsebeats.core.gateway import (
    AudioOutput,
    BackoffPolicy,
    CaptionOutput,
    ImageOutput,
    InferenceGateway,
    VideoOutput,
)

# ============================================================================
# Provider Fakes
# ============================================================================


class FakeBackend:
    """In-memory inference backend.

    Every `run` is recorded. Outcomes can be scripted per model ref; exceptions
    in the script are raised, anything else is returned as raw model output.
    Unscripted calls return plausible provider output.
    """

    def __init__(self, models: ModelsConfig | None = None) -> None:
        self.refs = models or ModelsConfig()
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.models: list[dict[str, Any]] | BaseException = [{"name": "musicgen"}]
        self.closed = False
        self._scripted: dict[str, list[Any]] = {}
        self._counter = itertools.count(1)

    def script(self, model_ref: str, *outcomes: Any) -> None:
        self._scripted.setdefault(model_ref, []).extend(outcomes)

    def calls_for(self, model_ref: str) -> list[dict[str, Any]]:
        return [inp for ref, inp in self.calls if ref == model_ref]

    async def run(self, model_ref: str, input: dict[str, Any]) -> Any:
        self.calls.append((model_ref, dict(input)))
        queue = self._scripted.get(model_ref)
        if queue:
            outcome = queue.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return self._default_output(model_ref)

    def _default_output(self, model_ref: str) -> Any:
        n = next(self._counter)
        if model_ref == self.refs.audio.ref:
            return f"https://cdn.test/audio-{n}.mp3"
        if model_ref == self.refs.image.ref:
            return [f"https://cdn.test/image-{n}.webp"]
        if model_ref == self.refs.caption.ref:
            return f"Caption: a picture {n}"
        if model_ref == self.refs.video.ref:
            return f"https://cdn.test/video-{n}.mp4"
        raise AssertionError(f"Unexpected model ref: {model_ref}")

    async def list_models(self) -> list[dict[str, Any]]:
        if isinstance(self.models, BaseException):
            raise self.models
        return self.models

    async def aclose(self) -> None:
        self.closed = True


class SleepRecorder:
    """Awaitable sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeClock:
    """Manual monotonic clock whose sleep advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StubGateway:
    """Gateway double for orchestrator tests.

    Outcomes are consumed in call order per operation; `None` (or an empty
    queue) means succeed. Captions come from `captions` first, then a counter.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.outcomes: dict[str, list[BaseException | None]] = {}
        self.audio_delays: list[float] = []
        self.captions: list[str] = []
        self._audio = itertools.count(1)
        self._image = itertools.count(1)
        self._caption = itertools.count(1)

    def fail(self, op: str, *outcomes: BaseException | None) -> None:
        self.outcomes.setdefault(op, []).extend(outcomes)

    def calls_to(self, op: str) -> list[tuple[Any, ...]]:
        return [c[1:] for c in self.calls if c[0] == op]

    def _next_outcome(self, op: str) -> None:
        queue = self.outcomes.get(op)
        if queue:
            outcome = queue.pop(0)
            if outcome is not None:
                raise outcome

    async def synthesize_audio(self, prompt: str, intensity: float = 0.0) -> AudioOutput:
        self.calls.append(("audio", prompt, intensity))
        n = next(self._audio)
        self._next_outcome("audio")
        if self.audio_delays:
            await asyncio.sleep(self.audio_delays.pop(0))
        return AudioOutput(audio_ref=f"https://cdn.test/audio-{n}.mp3")

    async def synthesize_image(self, prompt: str, intensity: float = 0.0) -> ImageOutput:
        self.calls.append(("image", prompt, intensity))
        n = next(self._image)
        self._next_outcome("image")
        return ImageOutput(image_ref=f"https://cdn.test/image-{n}.webp")

    async def caption_image(self, image_ref: str) -> CaptionOutput:
        self.calls.append(("caption", image_ref))
        n = next(self._caption)
        self._next_outcome("caption")
        caption = self.captions.pop(0) if self.captions else f"caption {n}"
        return CaptionOutput(caption=caption)

    async def synthesize_video(
        self, image_refs: Sequence[str], captions: Sequence[str]
    ) -> VideoOutput:
        self.calls.append(("video", list(image_refs), list(captions)))
        self._next_outcome("video")
        return VideoOutput(video_ref="https://cdn.test/video.mp4")


class RecordingObserver:
    """Chain observer that records every notification in order."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    def kinds(self) -> list[str]:
        return [e[0] for e in self.events]

    def on_sample_complete(self, sample: GenerationSample) -> None:
        self.events.append(("sample", sample.round, sample.index))

    def on_sample_failed(self, round_index: int, index: int, error: BaseException) -> None:
        self.events.append(("sample_failed", round_index, index, error))

    def on_round_complete(self, chain: CorpseChain, result: RoundResult) -> None:
        self.events.append(("round", result.round))

    def on_chain_complete(self, chain: CorpseChain) -> None:
        self.events.append(("complete", chain.status))

    def on_chain_failed(self, chain: CorpseChain, error: BaseException) -> None:
        self.events.append(("failed", chain.status, error))


# ============================================================================
# Gateway Fixtures
# ============================================================================


@pytest.fixture
def models_config() -> ModelsConfig:
    return ModelsConfig()


@pytest.fixture
def backend(models_config: ModelsConfig) -> FakeBackend:
    return FakeBackend(models_config)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def no_jitter() -> BackoffPolicy:
    """Default schedule (2s, 4s, 8s ...) without random jitter."""
    return BackoffPolicy(max_jitter_ms=0)


@pytest.fixture
def gateway(
    backend: FakeBackend, models_config: ModelsConfig, no_jitter: BackoffPolicy, sleeps
) -> InferenceGateway:
    return InferenceGateway(backend, models=models_config, retry=no_jitter, sleep=sleeps)


# ============================================================================
# Chain Fixtures
# ============================================================================


@pytest.fixture
def stub_gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def parallel_config() -> ChainConfig:
    return ChainConfig(samples_per_round=4, execution_mode=ExecutionMode.PARALLEL)


@pytest.fixture
def paced_config() -> ChainConfig:
    return ChainConfig(
        samples_per_round=3,
        execution_mode=ExecutionMode.PACED_SEQUENTIAL,
        pacing_delay_s=15.0,
    )


def make_sample(
    round_index: int = 0, index: int = 0, caption: str = "a caption"
) -> GenerationSample:
    return GenerationSample(
        round=round_index,
        index=index,
        audio_ref=f"https://cdn.test/audio-{round_index}-{index}.mp3",
        image_ref=f"https://cdn.test/image-{round_index}-{index}.webp",
        caption=caption,
        resolved_prompt="prompt, cheerful, bright, innocent",
        image_prompt="prompt, pastel colors, soft lighting, dreamy",
    )
