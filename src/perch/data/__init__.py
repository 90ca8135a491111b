"""Route data: keyed, reconciled, refetchable page data.

Basic usage::

    from perch.data import create_route_data, refetch_route_data

    user = create_route_data(load_user, key=lambda: {"id": user_id()})
    await user.ready()
    await refetch_route_data({"id": 7})

Submodules import each other, so the public names are resolved lazily.
"""

__all__ = [
    "FETCH_EVENT",
    "DeepReconcilingCell",
    "PageEvent",
    "RedirectInterceptor",
    "ReconcileOptions",
    "RefetchRegistry",
    "RouteDataEvent",
    "create_route_data",
    "get_registry",
    "partial_match",
    "refetch_route_data",
]


def __getattr__(name: str) -> object:
    if name in ("create_route_data", "refetch_route_data", "RefetchRegistry", "get_registry"):
        from perch.data import route_data as _route_data

        return getattr(_route_data, name)

    if name in ("DeepReconcilingCell", "ReconcileOptions"):
        from perch.data import store as _store

        return getattr(_store, name)

    if name in ("FETCH_EVENT", "PageEvent", "RouteDataEvent"):
        from perch.data import events as _events

        return getattr(_events, name)

    if name == "RedirectInterceptor":
        from perch.data.redirects import RedirectInterceptor

        return RedirectInterceptor

    if name == "partial_match":
        from perch.data.keys import partial_match

        return partial_match

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
