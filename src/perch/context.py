"""Route context: what route data needs from its host, in one object.

``RouteContext`` bundles the owning scope, the runtime (server or
client), the page object, and the navigation collaborators.  Pass it
explicitly to ``create_route_data(context=...)``, or install it as the
ambient default for the current task with ``use_route_context``.

Thread safety:
    ``ContextVar`` is task-local under asyncio. No locks needed.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

from perch.config import DataConfig
from perch.data.events import PageEvent
from perch.errors import ConfigurationError
from perch.reactive.scheduler import Scheduler
from perch.reactive.scope import Scope


class Navigate(Protocol):
    """Router navigation: ``navigate("/login", replace=True)``."""

    def __call__(self, url: str, *, replace: bool = False) -> None: ...


@dataclass(frozen=True, slots=True)
class RouteContext:
    """Host collaborators for route data.

    Build one with ``RouteContext.server(...)`` or ``RouteContext.client(...)``.

    Attributes:
        scope: Owner of every route-data instance created with this context.
        is_server: Server runtime (mutate the page response) vs. client
            runtime (navigate the browser).
        page: ``PageEvent`` on the server; the ambient page context on the
            client, handed to fetchers as-is.
        navigate: Router navigation for same-origin redirect targets.
        assign_location: Full browser navigation for cross-origin targets
            (client only).
        scheduler: Deferral and transition helper.
        config: Redirect and reconciliation settings.
    """

    scope: Scope
    is_server: bool
    page: Any = None
    navigate: Navigate | None = None
    assign_location: Callable[[str], None] | None = None
    scheduler: Scheduler = field(default_factory=Scheduler)
    config: DataConfig = field(default_factory=DataConfig)

    @classmethod
    def server(
        cls,
        page: PageEvent,
        *,
        scope: Scope | None = None,
        navigate: Navigate | None = None,
        scheduler: Scheduler | None = None,
        config: DataConfig | None = None,
    ) -> RouteContext:
        """Context for rendering *page* on the server."""
        return cls(
            scope=scope or Scope("page"),
            is_server=True,
            page=page,
            navigate=navigate,
            scheduler=scheduler or Scheduler(),
            config=config or DataConfig(),
        )

    @classmethod
    def client(
        cls,
        *,
        navigate: Navigate,
        assign_location: Callable[[str], None],
        page: Any = None,
        scope: Scope | None = None,
        scheduler: Scheduler | None = None,
        config: DataConfig | None = None,
    ) -> RouteContext:
        """Context for a client runtime.

        Raises:
            ConfigurationError: If either navigation collaborator is missing.
        """
        if navigate is None or assign_location is None:
            msg = "client route context needs both navigate and assign_location"
            raise ConfigurationError(msg)
        return cls(
            scope=scope or Scope("client"),
            is_server=False,
            page=page,
            navigate=navigate,
            assign_location=assign_location,
            scheduler=scheduler or Scheduler(),
            config=config or DataConfig(),
        )

    def with_scope(self, scope: Scope) -> RouteContext:
        """Same collaborators, different owner (e.g. a child component)."""
        return replace(self, scope=scope)


route_context_var: ContextVar[RouteContext] = ContextVar("perch_route_context")
"""The ambient route context. Set by the host around page rendering."""


def get_route_context() -> RouteContext:
    """Return the ambient route context.

    Raises ``LookupError`` if none is installed.
    """
    return route_context_var.get()


@contextmanager
def use_route_context(context: RouteContext) -> Iterator[RouteContext]:
    """Install *context* as the ambient route context for this block."""
    token = route_context_var.set(context)
    try:
        yield context
    finally:
        route_context_var.reset(token)
