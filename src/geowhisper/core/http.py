"""
HTTP helpers.

Two calls leave the process: the reverse-geocoding lookup (async, awaited by
the label resolver) and the zone feed fetch (sync, used by the CLI).

Both:
- apply a default timeout and User-Agent,
- raise on non-2xx so callers decide how to fail (the label resolver swallows,
  the feed client falls back to its stale cache).
"""

from __future__ import annotations

from typing import Any

import httpx


DEFAULT_USER_AGENT = "geowhisper/0.1.0 (+https://local)"


def _headers(extra: dict[str, str] | None) -> dict[str, str]:
    request_headers = {"User-Agent": DEFAULT_USER_AGENT}
    if extra:
        request_headers.update(extra)
    return request_headers


async def get_json_async(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 10,
) -> Any:
    """GET `url` without blocking the event loop and return the decoded JSON.

    Raises:
        httpx.HTTPError: On transport errors, timeouts or non-2xx status codes.
        ValueError: If the response body is not valid JSON.
    """
    async with httpx.AsyncClient(timeout=timeout_seconds) as client:
        resp = await client.get(url, params=params, headers=_headers(headers))
        resp.raise_for_status()
        return resp.json()


def post_json(
    url: str,
    *,
    payload: dict[str, Any],
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 10,
) -> Any:
    """POST `payload` as a JSON body and return the decoded JSON response.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If the response body is not valid JSON.
    """
    with httpx.Client(timeout=timeout_seconds) as client:
        resp = client.post(url, json=payload, headers=_headers(headers))
        resp.raise_for_status()
        return resp.json()
