"""Bounded exponential-backoff retry for gateway operations."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging
import random
from typing import TypeVar

from corpsebeats.core.config.models import GatewayRetryConfig
from corpsebeats.core.errors import CorpseBeatsError, classify_error, error_category

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BackoffPolicy:
    """Delay schedule and attempt cap.

    Attributes:
        max_attempts: Total attempts including the first
        initial_delay_ms: Base of the exponential schedule
        backoff_multiplier: Growth factor per attempt
        max_delay_ms: Cap on the exponential part (jitter is added on top)
        max_jitter_ms: Upper bound of the uniform random jitter
    """

    max_attempts: int = 3
    initial_delay_ms: float = 1000.0
    backoff_multiplier: float = 2.0
    max_delay_ms: float = 10000.0
    max_jitter_ms: float = 1000.0

    @classmethod
    def from_config(cls, config: GatewayRetryConfig) -> BackoffPolicy:
        return cls(
            max_attempts=config.max_attempts,
            initial_delay_ms=config.initial_delay_ms,
            backoff_multiplier=config.backoff_multiplier,
            max_delay_ms=config.max_delay_ms,
            max_jitter_ms=config.max_jitter_ms,
        )

    def compute_delay_ms(self, attempt_index: int) -> float:
        """Delay before the attempt with 0-based index `attempt_index` (>= 1).

        Example:
            >>> BackoffPolicy(max_jitter_ms=0).compute_delay_ms(1)
            2000.0
        """
        delay = min(
            self.initial_delay_ms * self.backoff_multiplier**attempt_index,
            self.max_delay_ms,
        )
        if self.max_jitter_ms > 0:
            delay += random.uniform(0, self.max_jitter_ms)
        return float(delay)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    context: str,
    policy: BackoffPolicy,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run `operation`, retrying classified failures per `policy`.

    Non-retryable categories (authentication, caller errors) abort after the
    first attempt. Once attempts run out, a fresh error of the last failure's
    category is raised, naming `context` and chained to the underlying cause.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt
        context: Human-readable description of the call, used in logs and errors
        policy: Attempt cap and delay schedule
        sleep: Awaitable sleep (injectable for tests)

    Raises:
        CorpseBeatsError: Terminal failure carrying `attempts` and `context`
    """
    attempts = 0
    last_error: CorpseBeatsError | None = None
    last_cause: BaseException | None = None

    for attempt_index in range(policy.max_attempts):
        if attempt_index > 0:
            delay_ms = policy.compute_delay_ms(attempt_index)
            logger.warning(
                "%s: retrying in %dms (attempt %d/%d)",
                context,
                round(delay_ms),
                attempt_index + 1,
                policy.max_attempts,
            )
            await sleep(delay_ms / 1000.0)

        attempts += 1
        try:
            return await operation()
        except Exception as exc:
            last_cause = exc
            last_error = classify_error(exc)
            logger.warning(
                "%s: attempt %d/%d failed (%s): %s",
                context,
                attempts,
                policy.max_attempts,
                type(last_error).__name__,
                last_error.message,
            )
            if not last_error.retryable:
                break

    assert last_error is not None
    category = error_category(last_error)
    terminal = category(
        f"{context} failed after {attempts} attempt{'s' if attempts != 1 else ''}: "
        f"{last_error.message}",
        context=context,
        attempts=attempts,
    )
    logger.error("%s", terminal.message)
    raise terminal from last_cause
