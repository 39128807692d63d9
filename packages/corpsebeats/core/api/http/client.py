"""Async HTTP client wrapper built on HTTPX.

Every failure comes out as an ApiError subclass, whether it was a bad status,
a dropped connection or an undecodable body. Retries follow a RetryPolicy;
a Retry-After header on the failed response takes precedence over backoff.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
import logging
import time
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel

from corpsebeats.core.api.http.config import HttpClientConfig
from corpsebeats.core.api.http.errors import (
    ApiError,
    DecodeError,
    NetworkError,
    TimeoutError,
    error_class_for_status,
)
from corpsebeats.core.api.http.retry import RetryPolicy, parse_retry_after_seconds
from corpsebeats.core.api.http.utils import join_url, redact_headers

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class AsyncApiClient:
    """Asynchronous HTTP API client.

    Args:
        config: Client configuration
        auth: Optional authentication handler (e.g. ApiKeyAuth)
        retry_policy: Retry policy (defaults to safe retries on idempotent methods)
        transport: Optional custom transport (useful for testing)

    Example:
        >>> config = HttpClientConfig(base_url="https://api.replicate.com/v1")
        >>> async with AsyncApiClient(config) as client:
        ...     data = client.json(await client.get("/models"))
    """

    def __init__(
        self,
        config: HttpClientConfig,
        *,
        auth: httpx.Auth | None = None,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.retry_policy = retry_policy or RetryPolicy()
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers={"User-Agent": config.user_agent, **config.headers},
            timeout=config.timeout,
            limits=config.limits,
            follow_redirects=True,
            auth=auth,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> AsyncApiClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _retry_delay(self, attempts: int, error: ApiError | None = None) -> float:
        if error is not None and error.response_headers:
            retry_after = parse_retry_after_seconds(error.response_headers.get("retry-after"))
            if retry_after is not None:
                return min(retry_after, self.retry_policy.max_delay_s)
        return self.retry_policy.compute_delay(attempts)

    def _is_retryable(self, method: str, error: ApiError) -> bool:
        policy = self.retry_policy
        if not policy.allows_method(method):
            return False
        if isinstance(error, (NetworkError, TimeoutError)):
            return policy.retry_on_network_errors
        return error.status_code in policy.retry_on_status

    async def _send(
        self,
        method: str,
        url: str,
        attempt: int,
        expected_status: Sequence[int] | None,
        **kwargs: Any,
    ) -> httpx.Response:
        logger.debug(
            "HTTP request",
            extra={
                "method": method,
                "url": url,
                "attempt": attempt,
                "headers": redact_headers(self._client.headers, self.config.redact_headers),
            },
        )
        start = time.perf_counter()
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TimeoutError(
                message="Request timed out", method=method, url=url, cause=e
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(
                message="Network error while sending request", method=method, url=url, cause=e
            ) from e

        logger.debug(
            "HTTP response",
            extra={
                "method": method,
                "url": url,
                "attempt": attempt,
                "status_code": resp.status_code,
                "elapsed_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        ok = (
            resp.status_code in expected_status
            if expected_status is not None
            else resp.status_code < 400
        )
        if not ok:
            raise error_class_for_status(resp.status_code).from_response(
                "HTTP error response",
                resp,
                snippet_limit=self.config.max_response_body_for_error,
            )
        return resp

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        json_body: Any = None,
        timeout: httpx.Timeout | float | None = None,
        expected_status: Sequence[int] | None = None,
    ) -> httpx.Response:
        """Send a request, retrying per the retry policy.

        Raises:
            ApiError: Subclass matching the last failure
        """
        method = method.upper()
        url = join_url(str(self._client.base_url), path)

        attempts = 0
        while True:
            attempts += 1
            try:
                return await self._send(
                    method,
                    url,
                    attempts,
                    expected_status,
                    params=params,
                    headers=headers,
                    json=json_body,
                    timeout=timeout if timeout is not None else self.config.timeout,
                )
            except ApiError as e:
                if attempts >= self.retry_policy.max_attempts or not self._is_retryable(method, e):
                    raise
                delay = self._retry_delay(attempts, e)
                logger.debug("Retrying %s %s in %.2fs (%s)", method, url, delay, e.message)
                await asyncio.sleep(delay)

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    def json(self, response: httpx.Response) -> Any:
        """Decode a JSON body; empty bodies decode to None.

        Raises:
            DecodeError: If response is not JSON or parsing fails
        """
        if response.status_code == 204 or not response.content:
            return None
        ctype = response.headers.get("content-type", "")
        if "application/json" not in ctype and "+json" not in ctype:
            raise DecodeError.from_response(
                "Response is not JSON (content-type mismatch)",
                response,
                snippet_limit=self.config.max_response_body_for_error,
            )
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError.from_response(
                "Failed to parse JSON response",
                response,
                snippet_limit=self.config.max_response_body_for_error,
                cause=e,
            ) from e

    def parse_pydantic(self, response: httpx.Response, model: type[ModelT]) -> ModelT:
        """Decode and validate a JSON body against `model`.

        Raises:
            DecodeError: If JSON parsing or validation fails
        """
        data = self.json(response)
        try:
            return model.model_validate(data)
        except ValueError as e:
            raise DecodeError.from_response(
                "Failed to validate response with Pydantic model",
                response,
                snippet_limit=self.config.max_response_body_for_error,
                cause=e,
            ) from e
