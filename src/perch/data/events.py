"""Execution contexts handed to route data fetchers.

On the server the host supplies a ``PageEvent`` for the page being
rendered.  Fetchers never see it: they receive a ``RouteDataEvent``, a
frozen view exposing only ``request``, ``env`` and ``fetch``, so no
fetcher can set the page status or headers directly.  On the client the
ambient page context is passed through unchanged.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from perch.http.headers import MutableHeaders
from perch.http.request import Request
from perch.http.response import Response

FETCH_EVENT = "$FETCH"
PAGE_EVENT = "$PAGE"

FetchFn = Callable[..., Awaitable[Response]]


async def _no_fetch(url: str, **_kwargs: Any) -> Response:
    msg = f"no fetch configured for this page event (requested {url!r})"
    raise RuntimeError(msg)


@dataclass(slots=True)
class PageEvent:
    """The server's current page: request in, status and headers out.

    Owned by the request-handling layer.  Route data only ever calls
    ``set_status_code`` and writes ``response_headers``.

    Attributes:
        request: The incoming request.
        env: Host environment bindings (read-only mapping).
        fetch: ``async (url, **kwargs) -> Response``; ``HTTPFetch`` in
            production.
        status_code: Status the page response will be sent with.
        response_headers: Headers the page response will carry.
    """

    request: Request
    env: Mapping[str, Any] = field(default_factory=dict)
    fetch: FetchFn = _no_fetch
    status_code: int = 200
    response_headers: MutableHeaders = field(default_factory=MutableHeaders)
    type: str = PAGE_EVENT

    def set_status_code(self, status: int) -> None:
        self.status_code = status


@dataclass(frozen=True, slots=True)
class RouteDataEvent:
    """Read-only fetcher context on the server."""

    request: Request
    env: Mapping[str, Any]
    fetch: FetchFn
    type: str = FETCH_EVENT

    @classmethod
    def from_page(cls, page: PageEvent) -> RouteDataEvent:
        return cls(request=page.request, env=MappingProxyType(dict(page.env)), fetch=page.fetch)
