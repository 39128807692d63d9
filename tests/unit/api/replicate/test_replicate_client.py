"""Tests for the Replicate predictions client."""

from __future__ import annotations

import json

import httpx
import pytest

from corpsebeats.core.api.http import AuthError
from corpsebeats.core.api.replicate import (
    PredictionFailedError,
    PredictionStatus,
    PredictionTimeoutError,
    ReplicateClient,
    prediction_path,
)
from corpsebeats.core.config.models import ProviderConfig
from corpsebeats.core.errors import ConfigurationError, TransientProviderError, classify_error


def _config(**overrides) -> ProviderConfig:
    values = {"api_token": "r8_test", "poll_interval_s": 0.0}
    values.update(overrides)
    return ProviderConfig(**values)


def test_prediction_path_pinned_version() -> None:
    assert prediction_path("meta/musicgen:abc123") == ("/predictions", {"version": "abc123"})


def test_prediction_path_bare_model() -> None:
    assert prediction_path("black-forest-labs/flux-schnell") == (
        "/models/black-forest-labs/flux-schnell/predictions",
        {},
    )


@pytest.mark.parametrize("token", [None, "", "   "])
def test_missing_token_is_configuration_error(token: str | None) -> None:
    with pytest.raises(ConfigurationError):
        ReplicateClient(ProviderConfig(api_token=token))


@pytest.mark.asyncio
async def test_run_synchronous_success() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            201, json={"id": "p1", "status": "succeeded", "output": ["https://cdn.test/a.mp3"]}
        )

    async with ReplicateClient(_config(), transport=httpx.MockTransport(handler)) as client:
        output = await client.run("meta/musicgen:abc", {"prompt": "lo-fi", "duration": 8})

    assert output == ["https://cdn.test/a.mp3"]
    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/v1/predictions"
    assert request.headers["Authorization"] == "Bearer r8_test"
    assert request.headers["Prefer"] == "wait=60"
    assert json.loads(request.content) == {
        "version": "abc",
        "input": {"prompt": "lo-fi", "duration": 8},
    }


@pytest.mark.asyncio
async def test_run_bare_model_ref_targets_model_endpoint() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": "p1", "status": "succeeded", "output": "ok"})

    async with ReplicateClient(_config(), transport=httpx.MockTransport(handler)) as client:
        await client.run("salesforce/blip", {"image": "https://x.test/i.png"})

    assert seen[0].url.path == "/v1/models/salesforce/blip/predictions"
    assert json.loads(seen[0].content) == {"input": {"image": "https://x.test/i.png"}}


@pytest.mark.asyncio
async def test_run_polls_until_terminal() -> None:
    statuses = iter(["processing", "processing", "succeeded"])
    polls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(201, json={"id": "p9", "status": "starting"})
        polls.append(request.url.path)
        status = next(statuses)
        output = "https://cdn.test/i.webp" if status == "succeeded" else None
        return httpx.Response(200, json={"id": "p9", "status": status, "output": output})

    async with ReplicateClient(_config(), transport=httpx.MockTransport(handler)) as client:
        output = await client.run("owner/model:v1", {})

    assert output == "https://cdn.test/i.webp"
    assert polls == ["/v1/predictions/p9"] * 3


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["failed", "canceled"])
async def test_run_failed_prediction(status: str) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            201, json={"id": "p2", "status": status, "error": "CUDA out of memory"}
        )

    async with ReplicateClient(_config(), transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(PredictionFailedError) as exc_info:
            await client.run("owner/model:v1", {})

    err = exc_info.value
    assert err.status == status
    assert "CUDA out of memory" in err.message
    assert isinstance(err, TransientProviderError)
    assert classify_error(err) is err


@pytest.mark.asyncio
async def test_run_times_out_while_processing() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "p3", "status": "processing"})

    config = _config(prediction_timeout_s=0.05, poll_interval_s=0.01)
    async with ReplicateClient(config, transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(PredictionTimeoutError) as exc_info:
            await client.run("owner/model:v1", {})

    assert exc_info.value.prediction_id == "p3"


@pytest.mark.asyncio
async def test_http_errors_are_not_retried() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(401, json={"detail": "Invalid token."})

    async with ReplicateClient(_config(), transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(AuthError):
            await client.run("owner/model:v1", {})

    assert calls["n"] == 1


@pytest.mark.asyncio
async def test_list_models() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/models"
        return httpx.Response(200, json={"results": [{"name": "musicgen"}, "junk"]})

    async with ReplicateClient(_config(), transport=httpx.MockTransport(handler)) as client:
        assert await client.list_models() == [{"name": "musicgen"}]


def test_prediction_status_terminal() -> None:
    assert PredictionStatus.SUCCEEDED.is_terminal
    assert PredictionStatus.CANCELED.is_terminal
    assert not PredictionStatus.STARTING.is_terminal
    assert not PredictionStatus.PROCESSING.is_terminal
