"""Route data — cached, refetchable values tied to a page route.

``create_route_data`` wraps a fetcher into a ``Resource`` that stores
its value in a ``DeepReconcilingCell``, intercepts redirects, and
registers its refetch handle in a process-wide ``RefetchRegistry``.
``refetch_route_data`` fans a refresh request out to every live
instance; only the instances whose key partially matches the request
actually fetch again.

Example::

    async def load_user(user_id, event):
        response = await event.fetch(f"/api/users/{user_id}")
        if response.status == 401:
            return redirect("/login")
        return response.json()

    user = create_route_data(load_user, key=lambda: {"user": params["id"]})
    await user.ready()

    # elsewhere, after saving user 7:
    await refetch_route_data({"user": 7})
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

import anyio

from perch._internal.invoke import invoke
from perch.context import RouteContext, get_route_context
from perch.data.events import RouteDataEvent
from perch.data.keys import partial_match
from perch.data.redirects import Failure, RedirectInterceptor, classify_error, classify_result
from perch.data.store import DeepReconcilingCell, ReconcileOptions
from perch.errors import ConfigurationError, ScopeDisposedError
from perch.reactive.resource import UNCHANGED, RefetchInfo, Resource, Storage

logger = logging.getLogger("perch.data")

RefetchHandle: TypeAlias = Callable[[Any], Awaitable[Any]]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class RefetchRegistry:
    """Set of refetch handles, one per live route-data instance.

    Insertion-ordered, but callers must not rely on the order.  Handles
    are added when an instance is created and discarded when its scope
    is disposed; discarding an absent handle is a no-op.

    Single-threaded: mutate and iterate from the event loop thread only.
    """

    __slots__ = ("_handles",)

    def __init__(self) -> None:
        self._handles: dict[RefetchHandle, None] = {}

    def add(self, handle: RefetchHandle) -> None:
        self._handles[handle] = None

    def discard(self, handle: RefetchHandle) -> None:
        self._handles.pop(handle, None)

    def snapshot(self) -> tuple[RefetchHandle, ...]:
        return tuple(self._handles)

    def clear(self) -> None:
        self._handles.clear()

    def __contains__(self, handle: object) -> bool:
        return handle in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    async def refetch(self, match_key: Any = None) -> None:
        """Refetch every registered instance concurrently.

        Membership is snapshotted first; a handle removed before its
        turn is skipped, a handle added meanwhile waits for the next call.
        ``None`` and falsy scalars such as ``0`` or ``""`` refetch
        unconditionally (see ``RefetchInfo.is_targeted``).
        """
        handles = self.snapshot()
        info = True if match_key is None else match_key
        logger.debug("refetching %d route data instance(s) for %r", len(handles), match_key)
        async with anyio.create_task_group() as tg:
            for handle in handles:
                if handle in self._handles:
                    tg.start_soon(handle, info)


_registry: RefetchRegistry | None = None


def get_registry() -> RefetchRegistry:
    """The process-wide registry, created on first use."""
    global _registry
    if _registry is None:
        _registry = RefetchRegistry()
    return _registry


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def _key_as_value(key: Any, _event: Any) -> Any:
    return key


def create_route_data(
    fetcher: Callable[[Any, Any], Any] | None = None,
    *,
    key: Any = True,
    initial_value: Any = None,
    context: RouteContext | None = None,
    registry: RefetchRegistry | None = None,
    reconcile: ReconcileOptions | None = None,
    storage: Callable[[Any], Storage[Any]] | None = None,
    name: str | None = None,
) -> Resource[Any]:
    """Create a route-data resource and start its first load.

    Args:
        fetcher: ``(key, event) -> value`` (sync or async).  May return
            a redirect ``Response`` or raise ``ResponseSignal``.  Without
            a fetcher the resource resolves to its key.
        key: Key, ``None``/``False`` to hold off fetching, or a nullary
            callable (or ``Signal``) producing one.
        initial_value: Value before the first load completes.
        context: Host collaborators.  Defaults to the ambient context.
        registry: Registry to join.  Defaults to the process-wide one.
        reconcile: List-matching rules for the reconciling storage.
            Defaults to the context's ``DataConfig``.
        storage: Replace the reconciling storage with another factory.
        name: Debug name used in logs.

    Raises:
        LookupError: No context given and none installed.
        ScopeDisposedError: The context's scope is already disposed.
        ConfigurationError: Server context without a page event.
    """
    ctx = context or get_route_context()
    if ctx.scope.disposed:
        raise ScopeDisposedError(ctx.scope.name)
    if ctx.is_server and ctx.page is None:
        msg = "server route context has no page event"
        raise ConfigurationError(msg)

    registry = registry or get_registry()
    config = ctx.config
    interceptor = RedirectInterceptor(ctx)
    user_fetcher = fetcher or _key_as_value
    options = reconcile or ReconcileOptions(key=config.reconcile_key, merge=config.reconcile_merge)

    async def fetch_route_data(current_key: Any, info: RefetchInfo[Any]) -> Any:
        if info.is_targeted and not partial_match(current_key, info.refetching):
            if config.log_refetch_skips:
                logger.debug("route data %r: key %r does not match %r", name, current_key, info.refetching)
            return UNCHANGED

        event = RouteDataEvent.from_page(ctx.page) if ctx.is_server else ctx.page
        try:
            result = await invoke(user_fetcher, current_key, event)
        except Exception as exc:
            outcome = classify_error(exc, config.redirect_statuses)
            if isinstance(outcome, Failure):
                raise
        else:
            outcome = classify_result(result, config.redirect_statuses)
        return interceptor.intercept(outcome)

    resource: Resource[Any] = Resource(
        key,
        fetch_route_data,
        scope=ctx.scope,
        initial_value=initial_value,
        storage=storage or DeepReconcilingCell.factory(options),
        name=name,
    )
    handle = resource.refetch
    registry.add(handle)
    ctx.scope.on_cleanup(lambda: registry.discard(handle))
    resource.start()
    return resource


async def refetch_route_data(match_key: Any = None, *, registry: RefetchRegistry | None = None) -> None:
    """Refetch every live route-data instance whose key matches *match_key*.

    ``None``, or a falsy scalar such as ``0``, refetches all of them.  A
    pattern such as ``{"id": 1}`` or ``["user"]`` only reaches instances
    whose current key partially matches it; the rest keep their value
    without fetching.
    """
    await (registry or get_registry()).refetch(match_key)
