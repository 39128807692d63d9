"""Gateway that drives generation through a Corpse Beats backend over HTTP.

Used when the orchestrator runs on a different machine from the provider
credential. Every call is paced to the provider's requests-per-minute
ceiling, retries included: a 429 is retried with backoff (honouring
Retry-After) and the retry then waits its turn at the pacer. Other failures
surface immediately, mapped onto the error taxonomy.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
import logging
from typing import Any

import httpx

from corpsebeats.core.api.http import (
    ApiError,
    AsyncApiClient,
    DecodeError,
    HttpClientConfig,
    NetworkError,
    RetryPolicy,
    TimeoutError,
)
from corpsebeats.core.api.http import RateLimitError as HttpRateLimitError
from corpsebeats.core.api.http.retry import parse_retry_after_seconds
from corpsebeats.core.client.pacing import RequestPacer
from corpsebeats.core.config.models import ClientConfig
from corpsebeats.core.errors import (
    CONFIGURATION_ERROR_MESSAGE,
    ArgumentMismatchError,
    AuthenticationError,
    ConfigurationError,
    CorpseBeatsError,
    RateLimitError,
    TransientProviderError,
    UnknownError,
    ValidationError,
)
from corpsebeats.core.gateway.base import AudioOutput, CaptionOutput, ImageOutput, VideoOutput

logger = logging.getLogger(__name__)


def map_backend_error(error: ApiError) -> CorpseBeatsError:
    """Translate an HTTP failure from the backend into the taxonomy.

    The backend's `{"error": ...}` message is preserved when present.
    """
    message = error.error_detail or error.message
    status = error.status_code

    if isinstance(error, (NetworkError, TimeoutError)):
        return TransientProviderError(f"Backend unreachable: {error.message}")
    if isinstance(error, DecodeError):
        return UnknownError(f"Unexpected backend response: {error.message}")
    if status == 400:
        return ValidationError(message)
    if status in (401, 403):
        return AuthenticationError(message)
    if status == 429:
        return RateLimitError(message)
    if status is not None and status >= 500:
        if message == CONFIGURATION_ERROR_MESSAGE:
            return ConfigurationError(message)
        return TransientProviderError(message)
    return UnknownError(message)


class RemoteGateway:
    """Gateway implementation backed by the HTTP surface of a backend process.

    Args:
        config: Backend URL, pacing ceiling, and 429 retry settings
        pacer: Shared pacer (a fresh one per gateway by default)
        transport: Optional custom transport (useful for testing)
        sleep: Awaitable sleep for 429 backoff (injectable for tests)
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        pacer: RequestPacer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._pacer = pacer or RequestPacer(config.requests_per_minute)
        self._sleep = sleep
        self._retry = RetryPolicy(
            max_attempts=config.max_attempts,
            base_delay_s=config.base_delay_s,
            max_delay_s=max(config.max_delay_s, config.base_delay_s),
        )
        self._http = AsyncApiClient(
            HttpClientConfig(
                base_url=config.backend_url,
                timeout=httpx.Timeout(config.timeout_s, connect=10.0),
            ),
            retry_policy=RetryPolicy.no_retries(),
            transport=transport,
        )

    @property
    def pacer(self) -> RequestPacer:
        return self._pacer

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> RemoteGateway:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _backoff_s(self, attempt: int, error: ApiError) -> float:
        retry_after = parse_retry_after_seconds((error.response_headers or {}).get("retry-after"))
        if retry_after is not None:
            return min(retry_after, self._retry.max_delay_s)
        return self._retry.compute_delay(attempt)

    async def _call(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        attempt = 0
        while True:
            attempt += 1
            await self._pacer.wait()
            try:
                resp = await self._http.request(method, path, json_body=payload)
                body = self._http.json(resp)
                break
            except ApiError as e:
                if isinstance(e, HttpRateLimitError) and attempt < self._retry.max_attempts:
                    delay = self._backoff_s(attempt, e)
                    logger.info(
                        "%s %s rate limited (attempt %d/%d), retrying in %.1fs",
                        method,
                        path,
                        attempt,
                        self._retry.max_attempts,
                        delay,
                    )
                    await self._sleep(delay)
                    continue
                mapped = map_backend_error(e)
                logger.warning("%s %s failed: %s", method, path, mapped.message)
                raise mapped from e

        if not isinstance(body, dict):
            raise UnknownError(f"Unexpected backend response from {path}")
        return body

    @staticmethod
    def _field(body: dict[str, Any], key: str) -> Any:
        value = body.get(key)
        if value in (None, "", []):
            raise UnknownError(f"Backend response is missing '{key}'")
        return value

    async def synthesize_audio(self, prompt: str, intensity: float = 0.0) -> AudioOutput:
        body = await self._call(
            "POST", "/api/generate-audio", {"prompt": prompt, "intensity": intensity}
        )
        return AudioOutput(audio_ref=self._field(body, "audio_url"))

    async def synthesize_image(self, prompt: str, intensity: float = 0.0) -> ImageOutput:
        body = await self._call(
            "POST", "/api/generate-image", {"prompt": prompt, "intensity": intensity}
        )
        return ImageOutput(image_ref=self._field(body, "image_url"))

    async def caption_image(self, image_ref: str) -> CaptionOutput:
        body = await self._call("POST", "/api/caption-image", {"imageUrl": image_ref})
        return CaptionOutput(caption=self._field(body, "caption"))

    async def synthesize_video(
        self, image_refs: Sequence[str], captions: Sequence[str]
    ) -> VideoOutput:
        """Request a video of the last image/caption pair.

        Raises:
            ArgumentMismatchError: Arrays differ in length or are empty; no request is sent
        """
        if len(image_refs) != len(captions):
            raise ArgumentMismatchError("imageUrls and captions arrays must have the same length")
        if not image_refs:
            raise ArgumentMismatchError("At least one image is required for video generation")

        body = await self._call(
            "POST",
            "/api/generate-video",
            {"imageUrls": list(image_refs), "captions": list(captions)},
        )
        urls = self._field(body, "videoUrls")
        return VideoOutput(video_ref=urls[0])

    async def health_check(self) -> dict[str, Any]:
        return await self._call("GET", "/api/check-rate-limits")
