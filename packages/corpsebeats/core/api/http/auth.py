from __future__ import annotations

from collections.abc import Generator

import httpx


class ApiKeyAuth(httpx.Auth):
    """Sets one header carrying a static key on every request.

    Example:
        >>> auth = ApiKeyAuth(header_name="Authorization", api_key="r8_xxx", prefix="Bearer")
    """

    def __init__(self, *, header_name: str, api_key: str, prefix: str | None = None) -> None:
        self.header_name = header_name
        self._value = f"{prefix} {api_key}" if prefix else api_key

    def __repr__(self) -> str:
        return f"ApiKeyAuth(header_name={self.header_name!r}, api_key='***')"

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        # httpx drives this generator for both the sync and async clients
        request.headers[self.header_name] = self._value
        yield request
