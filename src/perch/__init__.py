"""Perch — route-level data loading for Python web apps.

Fetch page data keyed by route parameters, keep it reconciled so
observers only hear about the parts that changed, treat redirects as
navigation instead of data, and refresh any subset of live page data
by partial key.

Basic usage::

    from perch import RouteContext, create_route_data, redirect

    async def load_account(key, event):
        if "session" not in event.request.cookies:
            return redirect("/login")
        response = await event.fetch(f"/api/accounts/{key['id']}")
        return response.json()

    ctx = RouteContext.server(page)
    account = create_route_data(load_account, key={"id": 7}, context=ctx)
    await account.ready()

Refreshing::

    from perch import refetch_route_data

    await refetch_route_data({"id": 7})   # only instances keyed on id 7
    await refetch_route_data()            # everything
"""

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "DataConfig",
    "DeepReconcilingCell",
    "Headers",
    "PageEvent",
    "PerchError",
    "ReconcileOptions",
    "RefetchRegistry",
    "Request",
    "Resource",
    "Response",
    "ResponseSignal",
    "RouteContext",
    "RouteDataEvent",
    "Scope",
    "ScopeDisposedError",
    "Signal",
    "create_route_data",
    "get_route_context",
    "partial_match",
    "redirect",
    "refetch_route_data",
    "use_route_context",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name in (
        "DeepReconcilingCell",
        "PageEvent",
        "ReconcileOptions",
        "RefetchRegistry",
        "RouteDataEvent",
        "create_route_data",
        "partial_match",
        "refetch_route_data",
    ):
        from perch import data as _data

        return getattr(_data, name)

    if name in ("RouteContext", "get_route_context", "use_route_context"):
        from perch import context as _ctx

        return getattr(_ctx, name)

    if name == "DataConfig":
        from perch.config import DataConfig

        return DataConfig

    if name in ("Headers", "Request", "Response", "redirect"):
        from perch import http as _http

        return getattr(_http, name)

    if name in ("Resource", "Scope", "Signal"):
        from perch import reactive as _reactive

        return getattr(_reactive, name)

    if name in ("ConfigurationError", "PerchError", "ResponseSignal", "ScopeDisposedError"):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
