"""Error taxonomy for Corpse Beats.

Every failure that crosses a component boundary is one of the classes below.
Each class carries the HTTP status it surfaces as and a user-facing message,
so the server layer and the CLI can report failures without re-classifying.
"""

from __future__ import annotations

from typing import Any

from corpsebeats.core.api.http import errors as http_errors

CONFIGURATION_ERROR_MESSAGE = "API configuration error"


class CorpseBeatsError(Exception):
    """Base exception for all Corpse Beats errors.

    Attributes:
        message: Human-readable error description
        status_code: HTTP status this error surfaces as
        context: Operation context (e.g. 'Audio generation for prompt: "..."')
        attempts: Number of attempts made before giving up (gateway errors only)
    """

    status_code: int = 500
    retryable: bool = True

    def __init__(
        self,
        message: str,
        *,
        context: str | None = None,
        attempts: int | None = None,
    ) -> None:
        self.message = message
        self.context = context
        self.attempts = attempts
        super().__init__(message)

    @property
    def user_message(self) -> str:
        """Message safe to show to an end user."""
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses and NDJSON progress events."""
        return {
            "error": self.user_message,
            "type": type(self).__name__,
            "status": self.status_code,
        }


class ValidationError(CorpseBeatsError):
    """Bad caller input. Rejected before any external call."""

    status_code = 400
    retryable = False


class ArgumentMismatchError(CorpseBeatsError):
    """Internal contract violation, e.g. mismatched image/caption array lengths."""

    status_code = 400
    retryable = False


class AuthenticationError(CorpseBeatsError):
    """Bad or missing provider credential. Never retried."""

    status_code = 401
    retryable = False

    @property
    def user_message(self) -> str:
        return "Authentication failed. Please check API credentials."


class RateLimitError(CorpseBeatsError):
    """Provider throttling (HTTP 429)."""

    status_code = 429

    @property
    def user_message(self) -> str:
        return "Rate limit exceeded. Please try again later."


class TransientProviderError(CorpseBeatsError):
    """Network failure or 5xx from the provider."""

    status_code = 500


class UnknownError(CorpseBeatsError):
    """Catch-all for failures that match no other category."""

    status_code = 500


class ConfigurationError(CorpseBeatsError):
    """Missing or invalid configuration (e.g. no API token)."""

    status_code = 500
    retryable = False

    @property
    def user_message(self) -> str:
        return CONFIGURATION_ERROR_MESSAGE


class RoundFailedError(CorpseBeatsError):
    """Every sample of a round failed; the chain cannot continue.

    When all samples failed for the same reason (e.g. a bad credential), the
    error takes that category's status and user message, available as
    `category`. Mixed failures stay a generic 500.
    """

    status_code = 500
    retryable = False

    def __init__(self, round_index: int, errors: list[BaseException]) -> None:
        self.round = round_index
        self.errors = errors
        self.causes = [classify_error(e) for e in errors]
        categories = {error_category(c) for c in self.causes}
        self.category: type[CorpseBeatsError] | None = (
            categories.pop() if len(categories) == 1 else None
        )
        if self.category is not None:
            self.status_code = self.category.status_code

        kinds = ", ".join(sorted({type(c).__name__ for c in self.causes})) or "no samples"
        super().__init__(
            f"Round {round_index} failed: all {len(errors)} samples failed ({kinds})"
        )

    @property
    def user_message(self) -> str:
        if self.category in (AuthenticationError, RateLimitError, ConfigurationError):
            return self.causes[0].user_message
        return self.message

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["round"] = self.round
        data["category"] = self.category.__name__ if self.category else None
        return data


class ChainCancelledError(CorpseBeatsError):
    """The caller abandoned the run."""

    status_code = 499
    retryable = False


_CATEGORIES: tuple[type[CorpseBeatsError], ...] = (
    ValidationError,
    ArgumentMismatchError,
    AuthenticationError,
    RateLimitError,
    TransientProviderError,
    ConfigurationError,
    UnknownError,
)


def error_category(error: CorpseBeatsError) -> type[CorpseBeatsError]:
    """Return the taxonomy category an error belongs to.

    Subclasses such as prediction failures report their category
    (TransientProviderError) so callers can rebuild an equivalent error.
    """
    for category in _CATEGORIES:
        if isinstance(error, category):
            return category
    return UnknownError


_AUTH_MARKERS = ("authentication", "unauthorized", "invalid token", "401")
_RATE_LIMIT_MARKERS = ("rate limit", "too many requests", "429")


def classify_error(exc: BaseException) -> CorpseBeatsError:
    """Map an arbitrary exception onto the taxonomy.

    Taxonomy errors pass through unchanged. HTTP client errors map by status
    class, never by their text. Anything else is classified from its message.

    Args:
        exc: Exception raised by a provider call

    Returns:
        A CorpseBeatsError instance (the original when already classified)
    """
    if isinstance(exc, CorpseBeatsError):
        return exc

    message = str(exc) or type(exc).__name__

    if isinstance(exc, http_errors.AuthError):
        classified: CorpseBeatsError = AuthenticationError(message)
    elif isinstance(exc, http_errors.RateLimitError):
        classified = RateLimitError(message)
    elif isinstance(
        exc,
        (
            http_errors.ServerError,
            http_errors.NetworkError,
            http_errors.TimeoutError,
            TimeoutError,
            ConnectionError,
        ),
    ):
        classified = TransientProviderError(message)
    elif isinstance(exc, http_errors.ApiError):
        classified = UnknownError(message)
    else:
        lowered = message.lower()
        if any(marker in lowered for marker in _AUTH_MARKERS):
            classified = AuthenticationError(message)
        elif any(marker in lowered for marker in _RATE_LIMIT_MARKERS):
            classified = RateLimitError(message)
        else:
            classified = UnknownError(message)

    classified.__cause__ = exc
    return classified
