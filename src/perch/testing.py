"""Test utilities for perch route data.

Recording stand-ins for the router and the browser location, plus
builders for server and client route contexts::

    from perch.testing import client_context

    ctx, navigator, location = client_context()
    data = create_route_data(fetcher, context=ctx, registry=RefetchRegistry())
    await data.ready()
    await ctx.scheduler.tick()
    assert navigator.calls == [("/login", True)]
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from perch.config import DataConfig
from perch.context import RouteContext
from perch.data.events import FetchFn, PageEvent
from perch.http.headers import Headers
from perch.http.request import Request
from perch.reactive.scope import Scope


@dataclass(slots=True)
class RecordingNavigator:
    """Router stand-in recording ``(url, replace)`` per navigation."""

    calls: list[tuple[str, bool]] = field(default_factory=list)

    def __call__(self, url: str, *, replace: bool = False) -> None:
        self.calls.append((url, replace))


@dataclass(slots=True)
class RecordingLocation:
    """Browser location stand-in recording full navigations."""

    assigned: list[str] = field(default_factory=list)

    def __call__(self, url: str) -> None:
        self.assigned.append(url)

    @property
    def href(self) -> str | None:
        return self.assigned[-1] if self.assigned else None


def make_request(
    path: str = "/",
    *,
    method: str = "GET",
    headers: Mapping[str, str] | None = None,
    cookies: Mapping[str, str] | None = None,
) -> Request:
    """Build a ``Request`` without an ASGI scope."""
    return Request(
        method=method,
        path=path,
        headers=Headers(headers or {}),
        cookies=dict(cookies or {}),
    )


def server_context(
    path: str = "/",
    *,
    env: Mapping[str, Any] | None = None,
    fetch: FetchFn | None = None,
    config: DataConfig | None = None,
    scope: Scope | None = None,
) -> tuple[RouteContext, PageEvent, RecordingNavigator]:
    """A server context for *path*, its page event, and its navigator."""
    page = PageEvent(request=make_request(path), env=dict(env or {}))
    if fetch is not None:
        page.fetch = fetch
    navigator = RecordingNavigator()
    ctx = RouteContext.server(page, scope=scope or Scope("test-page"), navigate=navigator, config=config)
    return ctx, page, navigator


def client_context(
    *,
    page: Any = None,
    config: DataConfig | None = None,
    scope: Scope | None = None,
) -> tuple[RouteContext, RecordingNavigator, RecordingLocation]:
    """A client context, its navigator, and its browser location."""
    navigator = RecordingNavigator()
    location = RecordingLocation()
    ctx = RouteContext.client(
        navigate=navigator,
        assign_location=location,
        page=page,
        scope=scope or Scope("test-client"),
        config=config,
    )
    return ctx, navigator, location
