"""Scheduling helpers — notification batching and next-turn deferral.

``batch()`` collects change notifications raised by signals and
reconciling cells and delivers them once, when the outermost batch
exits.  ``Scheduler`` wraps the event loop for the two timing rules
route data relies on:

- ``defer(fn)`` runs *fn* on a later loop turn (after the current
  fetch resolution has settled);
- ``transition(fn)`` runs *fn* inside a batch so navigation triggered
  by a redirect does not tear a half-applied update.

Single-threaded: batching state is module-global and must only be
touched from the event loop thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any


class _BatchState:
    __slots__ = ("depth", "queue", "seen")

    def __init__(self) -> None:
        self.depth = 0
        self.queue: list[tuple[Callable[..., Any], tuple[Any, ...]]] = []
        self.seen: set[tuple[Callable[..., Any], tuple[Any, ...]]] = set()


_state = _BatchState()


@contextmanager
def batch() -> Iterator[None]:
    """Defer notifications until the outermost ``batch()`` exits.

    The same ``(callback, args)`` pair queued several times is delivered
    once::

        with batch():
            cell.write(first)
            cell.write(second)
        # subscribers run here, once per changed path
    """
    _state.depth += 1
    try:
        yield
    finally:
        _state.depth -= 1
        if _state.depth == 0:
            _flush()


def notify(callback: Callable[..., Any], *args: Any) -> None:
    """Call ``callback(*args)`` now, or at the end of the current batch."""
    if _state.depth:
        entry = (callback, args)
        try:
            if entry in _state.seen:
                return
            _state.seen.add(entry)
        except TypeError:
            pass  # unhashable callback or args: deliver every time
        _state.queue.append(entry)
        return
    callback(*args)


def _flush() -> None:
    while _state.queue:
        pending = list(_state.queue)
        _state.queue.clear()
        _state.seen.clear()
        for callback, args in pending:
            callback(*args)


class Scheduler:
    """Loop-bound timing for route data side effects.

    Args:
        loop: Event loop to schedule on.  Defaults to the running loop
            at the time of each call.
    """

    __slots__ = ("_loop",)

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def defer(self, callback: Callable[[], object]) -> asyncio.Handle:
        """Run *callback* on a later loop turn."""
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_soon(callback)

    def transition(self, fn: Callable[[], object]) -> None:
        """Run *fn* with notifications batched until it returns."""
        with batch():
            fn()

    async def tick(self) -> None:
        """Yield to the loop until callbacks deferred so far have run."""
        loop = self._loop or asyncio.get_running_loop()
        done = loop.create_future()
        loop.call_soon(done.set_result, None)
        await done
