"""Async HTTPX wrapper used for the inference provider and the backend shim.

Exposes a small surface:
- AsyncApiClient: high-level async client
- HttpClientConfig: configuration
- RetryPolicy: transport-level retry rules
- ApiKeyAuth: static header authentication
- Exceptions: ApiError and subclasses
"""

from corpsebeats.core.api.http.auth import ApiKeyAuth
from corpsebeats.core.api.http.client import AsyncApiClient
from corpsebeats.core.api.http.config import HttpClientConfig
from corpsebeats.core.api.http.errors import (
    ApiError,
    AuthError,
    ClientError,
    DecodeError,
    NetworkError,
    RateLimitError,
    ServerError,
    TimeoutError,
    UnexpectedStatusError,
)
from corpsebeats.core.api.http.retry import RetryPolicy

__all__ = [
    "AsyncApiClient",
    "HttpClientConfig",
    "RetryPolicy",
    "ApiKeyAuth",
    "ApiError",
    "NetworkError",
    "TimeoutError",
    "DecodeError",
    "RateLimitError",
    "AuthError",
    "ClientError",
    "ServerError",
    "UnexpectedStatusError",
]
