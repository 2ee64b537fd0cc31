"""Shared HTTP helpers for sources backed by ``httpx``."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECS = 12.0


async def send(
    client: httpx.AsyncClient | None,
    method: str,
    url: str,
    *,
    timeout: float | None = None,
    headers: Mapping[str, str] | None = None,
    params: Mapping[str, Any] | None = None,
    json: Any = None,
) -> httpx.Response:
    """Send a request through *client*, or a short-lived client when ``None``.

    A ``timeout`` in seconds overrides the client's default for this request.
    """

    request_timeout: Any = (
        httpx.Timeout(timeout) if timeout is not None else httpx.USE_CLIENT_DEFAULT
    )
    if client is not None:
        return await client.request(
            method, url, params=params, json=json, headers=headers, timeout=request_timeout
        )
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(timeout or DEFAULT_TIMEOUT_SECS)
    ) as owned:
        return await owned.request(method, url, params=params, json=json, headers=headers)


async def request_json(
    client: httpx.AsyncClient | None,
    method: str,
    url: str,
    **kwargs: Any,
) -> Any:
    """Send a request and return its parsed JSON body.

    Raises:
        httpx.HTTPStatusError on non-2xx responses.
        httpx.RequestError on connection/timeout errors.
    """

    try:
        response = await send(client, method, url, **kwargs)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPStatusError as exc:
        log.warning(
            "%s %s failed: status=%s body=%s",
            method,
            url,
            exc.response.status_code,
            exc.response.text,
        )
        raise
    except httpx.RequestError as exc:
        log.warning("%s %s request error: %s", method, url, exc)
        raise
