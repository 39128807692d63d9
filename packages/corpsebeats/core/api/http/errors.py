"""Transport-level failures raised by AsyncApiClient.

These never leave the package boundary as-is: the gateway and the remote
shim translate them into the domain taxonomy in `corpsebeats.core.errors`.
"""

from __future__ import annotations

import httpx

from corpsebeats.core.api.http.utils import extract_error_detail, safe_snippet


class ApiError(Exception):
    """Base class for a failed HTTP exchange.

    Attributes:
        message: What went wrong, from the client's point of view
        method: HTTP method of the failed request
        url: Absolute request URL
        status_code: Response status, None when no response arrived
        response_headers: Response headers, if any
        response_body_snippet: Leading bytes of the body, decoded leniently
        error_detail: `error`/`detail` message from a JSON error body
        cause: Underlying httpx or decoding exception
    """

    def __init__(
        self,
        *,
        message: str,
        method: str,
        url: str,
        status_code: int | None = None,
        response_headers: dict[str, str] | None = None,
        response_body_snippet: str | None = None,
        error_detail: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.message = message
        self.method = method
        self.url = url
        self.status_code = status_code
        self.response_headers = response_headers
        self.response_body_snippet = response_body_snippet
        self.error_detail = error_detail
        self.cause = cause
        super().__init__(str(self))

    @classmethod
    def from_response(
        cls,
        message: str,
        response: httpx.Response,
        *,
        snippet_limit: int = 4096,
        cause: BaseException | None = None,
    ) -> ApiError:
        content = response.content or b""
        return cls(
            message=message,
            method=response.request.method,
            url=str(response.request.url),
            status_code=response.status_code,
            response_headers=dict(response.headers),
            response_body_snippet=safe_snippet(content, snippet_limit),
            error_detail=extract_error_detail(content),
            cause=cause,
        )

    def __str__(self) -> str:
        text = f"{self.message} | {self.method} {self.url}"
        if self.status_code is not None:
            text += f" | status={self.status_code}"
        if self.error_detail:
            text += f" | detail={self.error_detail}"
        return text


class NetworkError(ApiError):
    """Connection could not be made or was dropped."""


class TimeoutError(ApiError):
    """No response within the configured timeout."""


class DecodeError(ApiError):
    """Body was not JSON, or did not match the expected model."""


class RateLimitError(ApiError):
    """429."""


class AuthError(ApiError):
    """401 or 403."""


class ClientError(ApiError):
    """Any other 4xx."""


class ServerError(ApiError):
    """5xx."""


class UnexpectedStatusError(ApiError):
    """Status outside the 4xx/5xx ranges that still counts as a failure."""


def error_class_for_status(status_code: int) -> type[ApiError]:
    """Pick the ApiError subclass for a failed response status."""
    if status_code in (401, 403):
        return AuthError
    if status_code == 429:
        return RateLimitError
    if 400 <= status_code < 500:
        return ClientError
    if 500 <= status_code < 600:
        return ServerError
    return UnexpectedStatusError
