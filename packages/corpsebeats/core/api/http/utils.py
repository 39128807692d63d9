"""Small helpers shared by the HTTP client and its errors."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import json
from urllib.parse import urljoin

REDACTED = "***REDACTED***"


def join_url(base_url: str, path: str) -> str:
    """Join base URL with path in a predictable way.

    Example:
        >>> join_url("https://api.replicate.com/v1", "/predictions")
        'https://api.replicate.com/v1/predictions'
    """
    if path.startswith(("http://", "https://")):
        return path
    base = base_url if base_url.endswith("/") else base_url + "/"
    return urljoin(base, path.lstrip("/"))


def redact_headers(headers: Mapping[str, str], names: Iterable[str]) -> dict[str, str]:
    """Copy headers with the named ones (case-insensitive) masked out."""
    hidden = {n.lower() for n in names}
    return {k: REDACTED if k.lower() in hidden else v for k, v in headers.items()}


def safe_snippet(content: bytes, limit: int) -> str:
    if not content:
        return ""
    return content[:limit].decode("utf-8", errors="replace")


def extract_error_detail(content: bytes) -> str | None:
    """Pull a human-readable message out of a JSON error body.

    Recognizes {"error": "..."} (our backend) and {"detail": "..."} (the provider).
    """
    if not content:
        return None
    try:
        body = json.loads(content)
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in ("error", "detail", "title"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return None
