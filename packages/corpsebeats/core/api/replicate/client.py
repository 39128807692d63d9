"""Async client for the Replicate predictions API.

A prediction is created with `Prefer: wait` so fast models answer in a single
round trip; anything still running afterwards is polled until it reaches a
terminal status. Transport-level retries are disabled: the gateway decides
what gets retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from corpsebeats.core.api.http import (
    ApiKeyAuth,
    AsyncApiClient,
    HttpClientConfig,
    RetryPolicy,
)
from corpsebeats.core.api.replicate.errors import PredictionFailedError, PredictionTimeoutError
from corpsebeats.core.api.replicate.models import Prediction, PredictionStatus
from corpsebeats.core.config.models import ProviderConfig
from corpsebeats.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def prediction_path(model_ref: str) -> tuple[str, dict[str, Any]]:
    """Resolve a model reference to the create endpoint and version payload.

    `owner/name:version` pins a version through `POST /predictions`;
    a bare `owner/name` targets the model's latest version.

    Example:
        >>> prediction_path("meta/musicgen:abc123")
        ('/predictions', {'version': 'abc123'})
        >>> prediction_path("meta/musicgen")
        ('/models/meta/musicgen/predictions', {})
    """
    name, sep, version = model_ref.partition(":")
    if sep and version:
        return "/predictions", {"version": version}
    return f"/models/{name}/predictions", {}


class ReplicateClient:
    """Inference backend talking to Replicate over HTTP.

    Args:
        config: Provider settings; api_token is required
        transport: Optional custom transport (useful for testing)
    """

    def __init__(
        self,
        config: ProviderConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        token = config.api_token.get_secret_value().strip() if config.api_token else ""
        if not token:
            raise ConfigurationError("Provider API token is not configured")

        self._config = config
        self._http = AsyncApiClient(
            HttpClientConfig(
                base_url=config.base_url,
                timeout=httpx.Timeout(config.timeout_s, connect=10.0),
            ),
            auth=ApiKeyAuth(
                header_name="Authorization",
                api_key=token,
                prefix="Bearer",
            ),
            retry_policy=RetryPolicy.no_retries(),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> ReplicateClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def run(self, model_ref: str, input: dict[str, Any]) -> Any:
        """Run a model to completion and return its output.

        Raises:
            PredictionFailedError: Prediction ended failed or canceled
            PredictionTimeoutError: Prediction still running after prediction_timeout_s
            ApiError: HTTP-level failure (classified by the gateway)
        """
        path, payload = prediction_path(model_ref)
        payload["input"] = input

        resp = await self._http.post(
            path,
            json_body=payload,
            headers={"Prefer": f"wait={self._config.wait_s}"},
        )
        prediction = self._http.parse_pydantic(resp, Prediction)
        logger.debug(
            "Created prediction %s for %s (%s)", prediction.id, model_ref, prediction.status
        )

        prediction = await self._wait(prediction)

        if prediction.status is not PredictionStatus.SUCCEEDED:
            raise PredictionFailedError(prediction.id, prediction.status.value, prediction.error)
        return prediction.output

    async def _wait(self, prediction: Prediction) -> Prediction:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._config.prediction_timeout_s

        while not prediction.status.is_terminal:
            if loop.time() >= deadline:
                raise PredictionTimeoutError(prediction.id, self._config.prediction_timeout_s)
            await asyncio.sleep(self._config.poll_interval_s)
            resp = await self._http.get(f"/predictions/{prediction.id}")
            prediction = self._http.parse_pydantic(resp, Prediction)

        return prediction

    async def list_models(self) -> list[dict[str, Any]]:
        """Return the first page of public models."""
        resp = await self._http.get("/models")
        body = self._http.json(resp) or {}
        results = body.get("results", []) if isinstance(body, dict) else []
        return [r for r in results if isinstance(r, dict)]
