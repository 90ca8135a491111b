"""Run a route-data fetcher whether it is ``def`` or ``async def``.

A sync fetcher's return value is used as-is; anything awaitable it
returns (a coroutine, a future, a task) is awaited.  Exceptions raised
either while calling or while awaiting propagate unchanged, so the
caller classifies them in one place::

    from perch._internal.invoke import invoke

    try:
        result = await invoke(fetcher, key, event)
    except Exception as exc:
        outcome = classify_error(exc)
"""

import inspect
from typing import Any


async def invoke(fetcher: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *fetcher* with the given arguments and settle its result."""
    result = fetcher(*args, **kwargs)
    while inspect.isawaitable(result):
        result = await result
    return result
