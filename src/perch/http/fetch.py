"""Default ``fetch`` for server page events, backed by httpx.

Redirects are *not* followed: an upstream 3xx comes back as a perch
``Response`` so a fetcher can return it and let route data intercept it.

Usage::

    fetch = HTTPFetch(base_url="http://api.internal")
    page = PageEvent(request=request, fetch=fetch)

    async def load_user(user_id, event):
        response = await event.fetch(f"/users/{user_id}")
        if response.status != 200:
            return response
        return response.json()
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from perch.http.headers import Headers
from perch.http.response import Response

logger = logging.getLogger("perch.http")


def from_httpx(response: httpx.Response) -> Response:
    """Convert an ``httpx.Response`` into a perch ``Response``."""
    return Response(
        body=response.content,
        status=response.status_code,
        headers=Headers(response.headers.multi_items()),
        content_type=response.headers.get("content-type", ""),
    )


class HTTPFetch:
    """Callable ``(url, *, method="GET", **kwargs) -> Response``.

    A new ``httpx.AsyncClient`` is created per call unless one is
    supplied, so no connection state is shared between requests.
    """

    __slots__ = ("_base_url", "_client", "_headers", "_timeout")

    def __init__(
        self,
        *,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url
        self._headers = dict(headers or {})
        self._timeout = timeout
        self._client = client

    async def __call__(self, url: str, *, method: str = "GET", **kwargs: Any) -> Response:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        logger.debug("fetch %s %s", method, url)
        if self._client is not None:
            response = await self._client.request(
                method, url, headers=headers, follow_redirects=False, **kwargs
            )
            return from_httpx(response)
        async with httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout) as client:
            response = await client.request(
                method, url, headers=headers, follow_redirects=False, **kwargs
            )
            return from_httpx(response)
