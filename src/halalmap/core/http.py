"""
HTTP helpers.

This module centralizes the minimal HTTP client logic used by the async API client.

Design goals:
- Small surface area (GET JSON).
- Deterministic defaults (timeout + User-Agent).
- Raise on non-2xx so callers can decide how to map the failure.
"""

from __future__ import annotations

from typing import Any

import httpx


DEFAULT_USER_AGENT = "halalmap/0.1.0 (+https://local)"


async def get_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """GET `url` and return the decoded JSON response.

    `transport` is passed through to `httpx.AsyncClient` (tests use `httpx.MockTransport`).

    Raises:
        httpx.HTTPStatusError: On non-2xx status codes (the response stays attached).
        httpx.HTTPError: On transport errors.
        ValueError: If the response body is not valid JSON.
    """
    request_headers = {"User-Agent": DEFAULT_USER_AGENT}
    if headers:
        request_headers.update(headers)

    async with httpx.AsyncClient(timeout=timeout_seconds, transport=transport) as client:
        resp = await client.get(url, params=params, headers=request_headers)
        resp.raise_for_status()
        return resp.json()
