from __future__ import annotations

import httpx
from pydantic import BaseModel, Field, field_validator

SENSITIVE_HEADERS = ("authorization", "proxy-authorization", "cookie", "set-cookie", "x-api-key")


class HttpClientConfig(BaseModel):
    """Connection settings for one AsyncApiClient.

    Both the provider client and the backend shim build one of these from
    their own config section; only `base_url` is ever required.
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    base_url: str
    timeout: httpx.Timeout = Field(default_factory=lambda: httpx.Timeout(60.0, connect=10.0))
    max_connections: int = Field(default=20, ge=1)
    headers: dict[str, str] = Field(default_factory=dict)
    user_agent: str = "corpsebeats/0.1"
    redact_headers: tuple[str, ...] = SENSITIVE_HEADERS
    max_response_body_for_error: int = 4096

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v

    @property
    def limits(self) -> httpx.Limits:
        return httpx.Limits(
            max_connections=self.max_connections,
            max_keepalive_connections=max(1, self.max_connections // 2),
        )
