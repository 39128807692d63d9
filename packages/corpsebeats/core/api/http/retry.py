from __future__ import annotations

import random

from pydantic import BaseModel, Field, model_validator


class RetryPolicy(BaseModel):
    """When AsyncApiClient resends a request on its own.

    The provider client and the backend shim both run with `no_retries()`;
    retry decisions live in the gateways above them.

    Attributes:
        max_attempts: Total attempts, the first one included
        base_delay_s: Delay after the first failure; doubles per attempt
        max_delay_s: Upper bound on any single delay, Retry-After included
        jitter: Fractional spread applied to each delay (0.15 means +/-15%)
        retry_on_status: Response statuses worth another attempt
        retry_on_network_errors: Whether timeouts and dropped connections count
        retry_methods: Methods that may be resent without opting in
        allow_non_idempotent: Resend any method, POST included
    """

    model_config = {"frozen": True}

    max_attempts: int = Field(default=3, ge=1)
    base_delay_s: float = Field(default=0.25, ge=0.0)
    max_delay_s: float = Field(default=5.0, ge=0.0)
    jitter: float = Field(default=0.15, ge=0.0, le=1.0)
    retry_on_status: tuple[int, ...] = (429, 500, 502, 503, 504)
    retry_on_network_errors: bool = True
    retry_methods: tuple[str, ...] = ("GET", "HEAD", "OPTIONS", "DELETE")
    allow_non_idempotent: bool = False

    @model_validator(mode="after")
    def _check_delays(self) -> RetryPolicy:
        if self.max_delay_s < self.base_delay_s:
            raise ValueError("max_delay_s must be >= base_delay_s")
        return self

    @classmethod
    def no_retries(cls) -> RetryPolicy:
        return cls(max_attempts=1)

    def allows_method(self, method: str) -> bool:
        return self.allow_non_idempotent or method.upper() in self.retry_methods

    def compute_delay(self, attempt: int) -> float:
        """Delay before the next try, `attempt` being the 1-based count of failures so far."""
        delay = min(self.max_delay_s, self.base_delay_s * 2 ** (attempt - 1))
        if not self.jitter:
            return delay
        spread = delay * self.jitter
        return max(0.0, delay + random.uniform(-spread, spread))


def parse_retry_after_seconds(value: str | None) -> float | None:
    """Read a Retry-After header given in seconds; HTTP-date values yield None."""
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None
