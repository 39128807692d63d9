"""Tests for InferenceGateway."""

from __future__ import annotations

import pytest

from corpsebeats.core.config.models import AppConfig, ModelsConfig, ProviderConfig
from corpsebeats.core.errors import (
    ArgumentMismatchError,
    AuthenticationError,
    ConfigurationError,
    RateLimitError,
    TransientProviderError,
    UnknownError,
)
from corpsebeats.core.gateway import (
    AudioOutput,
    CaptionOutput,
    ImageOutput,
    InferenceGateway,
    VideoOutput,
    create_gateway,
    normalize_caption,
)
from tests.conftest import FakeBackend, SleepRecorder

# ============================================================================
# Synthesis
# ============================================================================


@pytest.mark.asyncio
async def test_synthesize_audio(
    gateway: InferenceGateway, backend: FakeBackend, models_config: ModelsConfig
) -> None:
    result = await gateway.synthesize_audio("lo-fi study beats, cheerful, bright, innocent")

    assert result == AudioOutput(audio_ref="https://cdn.test/audio-1.mp3")
    assert backend.calls == [
        (
            models_config.audio.ref,
            {
                "prompt": "lo-fi study beats, cheerful, bright, innocent",
                "duration": 8,
                "model_version": "stereo-melody-large",
                "output_format": "mp3",
            },
        )
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(("intensity", "steps"), [(0.0, 1), (0.33, 1), (0.66, 4), (1.0, 4)])
async def test_image_steps_follow_intensity(
    gateway: InferenceGateway,
    backend: FakeBackend,
    models_config: ModelsConfig,
    intensity: float,
    steps: int,
) -> None:
    result = await gateway.synthesize_image("a doll", intensity)

    assert result == ImageOutput(image_ref="https://cdn.test/image-1.webp")
    (model_input,) = backend.calls_for(models_config.image.ref)
    assert model_input == {"prompt": "a doll", "num_inference_steps": steps, "aspect_ratio": "1:1"}


@pytest.mark.asyncio
async def test_caption_image_strips_label(
    gateway: InferenceGateway, backend: FakeBackend, models_config: ModelsConfig
) -> None:
    result = await gateway.caption_image("https://cdn.test/image-9.webp")

    assert result == CaptionOutput(caption="a picture 1")
    assert backend.calls_for(models_config.caption.ref) == [
        {"image": "https://cdn.test/image-9.webp", "task": "image_captioning"}
    ]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Caption: a dog on a beach", "a dog on a beach"),
        ("caption:a dog", "a dog"),
        ("  a cat  ", "a cat"),
        (["a", "cat"], "a cat"),
    ],
)
def test_normalize_caption(raw: object, expected: str) -> None:
    assert normalize_caption(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "Caption:   ", 42])
def test_normalize_caption_rejects_empty(raw: object) -> None:
    with pytest.raises(UnknownError):
        normalize_caption(raw)


@pytest.mark.asyncio
async def test_file_object_output_is_normalized(
    gateway: InferenceGateway, backend: FakeBackend, models_config: ModelsConfig
) -> None:
    backend.script(models_config.audio.ref, {"url": "https://cdn.test/file.wav"})
    assert (await gateway.synthesize_audio("x y z")).audio_ref == "https://cdn.test/file.wav"


# ============================================================================
# Video
# ============================================================================


@pytest.mark.asyncio
async def test_video_uses_last_pair(
    gateway: InferenceGateway, backend: FakeBackend, models_config: ModelsConfig
) -> None:
    images = [f"https://cdn.test/image-{i}.webp" for i in range(4)]
    captions = ["a field", "a faded field", "a dark field", "a bleeding scarecrow"]

    result = await gateway.synthesize_video(images, captions)

    assert result == VideoOutput(video_ref="https://cdn.test/video-1.mp4")
    (model_input,) = backend.calls_for(models_config.video.ref)
    assert model_input["start_image"] == images[-1]
    assert model_input["prompt"].startswith("a bleeding scarecrow. Nightmarish")
    assert model_input["mode"] == "standard"
    assert model_input["duration"] == 5


@pytest.mark.asyncio
async def test_video_length_mismatch_makes_no_call(
    gateway: InferenceGateway, backend: FakeBackend
) -> None:
    with pytest.raises(ArgumentMismatchError):
        await gateway.synthesize_video(["https://a.test/1.png", "https://a.test/2.png"], ["one"])
    with pytest.raises(ArgumentMismatchError):
        await gateway.synthesize_video([], [])
    assert backend.calls == []


# ============================================================================
# Retry and errors
# ============================================================================


@pytest.mark.asyncio
async def test_transient_failures_are_retried(
    gateway: InferenceGateway,
    backend: FakeBackend,
    models_config: ModelsConfig,
    sleeps: SleepRecorder,
) -> None:
    backend.script(
        models_config.audio.ref,
        TransientProviderError("502 Bad Gateway"),
        TransientProviderError("502 Bad Gateway"),
        "https://cdn.test/late.mp3",
    )

    result = await gateway.synthesize_audio("x y z")

    assert result.audio_ref == "https://cdn.test/late.mp3"
    assert len(backend.calls) == 3
    assert sleeps.delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_auth_failure_is_not_retried(
    gateway: InferenceGateway, backend: FakeBackend, models_config: ModelsConfig
) -> None:
    backend.script(models_config.image.ref, AuthenticationError("Unauthorized"))

    with pytest.raises(AuthenticationError) as exc_info:
        await gateway.synthesize_image("x y z")

    assert len(backend.calls) == 1
    assert exc_info.value.attempts == 1
    assert exc_info.value.context == 'Image generation for prompt: "x y z"'


@pytest.mark.asyncio
async def test_exhausted_rate_limit_carries_context(
    gateway: InferenceGateway, backend: FakeBackend, models_config: ModelsConfig
) -> None:
    backend.script(models_config.caption.ref, *[RateLimitError("429 Too Many Requests")] * 3)

    with pytest.raises(RateLimitError) as exc_info:
        await gateway.caption_image("https://cdn.test/x.png")

    assert exc_info.value.attempts == 3
    assert exc_info.value.message.startswith(
        "Image captioning for: https://cdn.test/x.png failed after 3 attempts"
    )


@pytest.mark.asyncio
async def test_long_prompts_are_previewed_in_context(
    gateway: InferenceGateway, backend: FakeBackend, models_config: ModelsConfig
) -> None:
    backend.script(models_config.audio.ref, AuthenticationError("nope"))
    prompt = "z" * 80

    with pytest.raises(AuthenticationError) as exc_info:
        await gateway.synthesize_audio(prompt)

    assert exc_info.value.context == f'Audio generation for prompt: "{"z" * 50}..."'


@pytest.mark.asyncio
async def test_empty_output_is_unknown_error(
    gateway: InferenceGateway, backend: FakeBackend, models_config: ModelsConfig
) -> None:
    backend.script(models_config.image.ref, [], [], [])
    with pytest.raises(UnknownError):
        await gateway.synthesize_image("x y z")


# ============================================================================
# Health and construction
# ============================================================================


@pytest.mark.asyncio
async def test_health_check(gateway: InferenceGateway, backend: FakeBackend) -> None:
    assert await gateway.health_check() == {
        "success": True,
        "message": "API connection successful",
        "modelExample": "musicgen",
    }
    backend.models = []
    assert (await gateway.health_check())["modelExample"] == "No models found"


@pytest.mark.asyncio
async def test_health_check_is_not_retried(
    gateway: InferenceGateway, backend: FakeBackend
) -> None:
    backend.models = RateLimitError("429")
    with pytest.raises(RateLimitError):
        await gateway.health_check()


def test_create_gateway_without_token() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        create_gateway(AppConfig())
    assert exc_info.value.user_message == "API configuration error"


@pytest.mark.asyncio
async def test_create_gateway_with_token() -> None:
    config = AppConfig(provider=ProviderConfig(api_token="r8_test"))
    gateway = create_gateway(config)
    try:
        assert type(gateway.backend).__name__ == "ReplicateClient"
    finally:
        await gateway.aclose()


@pytest.mark.asyncio
async def test_aclose_closes_backend(backend: FakeBackend) -> None:
    gateway = create_gateway(AppConfig(), backend=backend)
    await gateway.aclose()
    assert backend.closed
