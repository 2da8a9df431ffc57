"""
HTTP helpers.

This module centralizes the small amount of HTTP client logic shared by the
backend client and the geo-IP location provider.

Design goals:
- Small surface area (one async request helper returning decoded JSON).
- Deterministic defaults (timeout + User-Agent).
- Raise on non-2xx so callers can decide how to fail.
"""

from __future__ import annotations

from typing import Any

import httpx

DEFAULT_USER_AGENT = "nearneeds/0.1.0 (+https://local)"


def build_async_client(
    *,
    base_url: str = "",
    timeout_seconds: float = 15,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Return an `httpx.AsyncClient` with our default headers and timeout."""
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout_seconds,
        headers={"User-Agent": DEFAULT_USER_AGENT},
        transport=transport,
    )


def decode_json(resp: httpx.Response) -> Any:
    """Return the JSON body of `resp`, or None for an empty body."""
    if not resp.content:
        return None
    return resp.json()


async def get_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 15,
    client: httpx.AsyncClient | None = None,
) -> Any:
    """GET `url` and return the decoded JSON response.

    A short-lived client is used when `client` is not given.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If the response body is not valid JSON.
    """
    if client is not None:
        resp = await client.get(url, params=params, headers=headers)
        resp.raise_for_status()
        return decode_json(resp)

    async with build_async_client(timeout_seconds=timeout_seconds) as own:
        resp = await own.get(url, params=params, headers=headers)
        resp.raise_for_status()
        return decode_json(resp)
