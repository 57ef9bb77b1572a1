"""
Shared HTTP helpers for provider send strategies.
"""

from __future__ import annotations

from typing import Any

import httpx

from external_notify.notifications.errors import ProviderTransportError

USER_AGENT = "external-notify/1.0"
MAX_ERROR_BODY = 200


async def request(
    client: httpx.AsyncClient,
    provider: str,
    method: str,
    url: str,
    **kwargs: Any,
) -> httpx.Response:
    """Perform one request, mapping transport failures and non-2xx statuses.

    Raises ProviderTransportError; never returns an unsuccessful response.
    """
    try:
        resp = await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise ProviderTransportError(provider, str(exc) or type(exc).__name__) from exc

    if not 200 <= resp.status_code < 300:
        body = resp.text[:MAX_ERROR_BODY]
        raise ProviderTransportError(provider, f"HTTP {resp.status_code} {body}".strip())
    return resp
