"""Resources — an async value keyed by a reactive source.

A ``Resource`` owns one cached value and the fetches that produce it.
Each load evaluates the source to a key; ``None`` or ``False`` means
"nothing to fetch".  The fetcher receives the key and a ``RefetchInfo``
describing why it runs.

Attempts never run against each other's results: an attempt that
finishes after a newer one has already committed is discarded.  An
attempt that returns ``UNCHANGED`` commits nothing, so it never
supersedes an older attempt that is still in flight.

States::

    unresolved --load--> pending --ok--> ready --refetch--> refreshing
                            \\                                  /
                             +--fail--> errored <--fail--------+
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, Literal, Protocol, TypeVar

from perch.reactive.scope import Scope
from perch.reactive.signal import Signal

logger = logging.getLogger("perch.reactive")

T = TypeVar("T")

ResourceState = Literal["unresolved", "pending", "ready", "refreshing", "errored"]


class _Unchanged:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNCHANGED"


UNCHANGED: Any = _Unchanged()
"""Returned by a fetcher to keep the previous value without a write."""


@dataclass(frozen=True, slots=True)
class RefetchInfo(Generic[T]):
    """Why a fetcher is running.

    Attributes:
        value: The value held before this attempt.
        refetching: ``False`` for a load triggered by the source,
            ``True`` for an unconditional refetch, anything else is the
            match key passed to ``refetch(...)``.
    """

    value: T | None
    refetching: Any = False

    @property
    def is_targeted(self) -> bool:
        """True when ``refetching`` carries a match key.

        ``True``, ``False``, ``None`` and falsy scalars such as ``0`` or
        ``""`` are not match keys: they mean "refetch unconditionally".
        Mappings and sequences always are, even when empty.
        """
        refetching = self.refetching
        if refetching is True or refetching is False:
            return False
        if isinstance(refetching, Mapping) or (
            isinstance(refetching, Sequence) and not isinstance(refetching, (str, bytes))
        ):
            return True
        return bool(refetching)


class Storage(Protocol[T]):
    def read(self) -> T: ...
    def write(self, value: Any) -> T: ...


Fetcher = Callable[[Any, RefetchInfo[T]], Awaitable[T]]


def _is_unset_key(key: object) -> bool:
    return key is None or key is False


class Resource(Generic[T]):
    """An async-loaded value owned by a scope.

    Args:
        source: Key, or nullary callable returning the key.  A ``Signal``
            is subscribed to and reloads the resource when set.
        fetcher: ``async (key, info) -> value``.
        scope: Owner; disposing it cancels in-flight attempts, clears
            the storage, and runs registered cleanups.
        initial_value: Value before the first load.  A non-``None``
            initial value starts the resource in ``ready``.
        storage: Factory ``(initial_value) -> Storage``.  Defaults to a
            ``Signal``.
        name: Debug name used in logs.
    """

    __slots__ = (
        "_committed",
        "_disposed",
        "_error",
        "_fetcher",
        "_generation",
        "_in_flight",
        "_key",
        "_scope",
        "_settled",
        "_source",
        "_start_pending",
        "_storage",
        "_tasks",
        "name",
    )

    def __init__(
        self,
        source: Any,
        fetcher: Fetcher[T],
        *,
        scope: Scope,
        initial_value: T | None = None,
        storage: Callable[[T | None], Storage[Any]] | None = None,
        name: str | None = None,
    ) -> None:
        self._source = source
        self._fetcher = fetcher
        self._scope = scope
        self._storage: Storage[Any] = (storage or Signal)(initial_value)
        self._settled: ResourceState = "ready" if initial_value is not None else "unresolved"
        self._error: BaseException | None = None
        self._key: Any = None
        self._generation = 0
        self._committed = 0
        self._in_flight = 0
        self._tasks: set[asyncio.Task[Any]] = set()
        self._disposed = False
        self._start_pending = False
        self.name = name

        scope.on_cleanup(self._dispose)
        if isinstance(source, Signal):
            scope.on_cleanup(source.subscribe(lambda _key: self._start_soon()))

    # -- Reading --

    def __call__(self) -> T | None:
        """Current value.  Raises the stored error when errored."""
        if self.state == "errored" and self._error is not None:
            raise self._error
        return self.latest

    @property
    def latest(self) -> T | None:
        """Last committed value, ignoring error state."""
        return self._storage.read()

    @property
    def state(self) -> ResourceState:
        if self._in_flight:
            return "refreshing" if self._settled == "ready" else "pending"
        return self._settled

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def key(self) -> Any:
        """Key used by the most recent attempt."""
        return self._key

    @property
    def storage(self) -> Storage[Any]:
        return self._storage

    @property
    def disposed(self) -> bool:
        return self._disposed

    def subscribe(
        self,
        callback: Callable[..., Any],
        path: tuple[Any, ...] = (),
        *,
        deep: bool = False,
    ) -> Callable[[], None]:
        """Observe the stored value.

        Path-level subscription needs a storage that supports it (the
        reconciling cell does); a plain ``Signal`` only supports the root.
        """
        storage: Any = self._storage
        if isinstance(storage, Signal):
            if path:
                msg = "Signal storage does not support path subscriptions"
                raise TypeError(msg)
            unsubscribe = storage.subscribe(callback)
        else:
            unsubscribe = storage.subscribe(path, callback, deep=deep)
        self._scope.on_cleanup(unsubscribe)
        return unsubscribe

    # -- Loading --

    def start(self, refetching: Any = False) -> asyncio.Task[T | None] | None:
        """Schedule an attempt on the running loop.

        Returns ``None`` (and marks the start pending for ``ready()``)
        when called without a running loop.
        """
        if self._disposed:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._start_pending = True
            return None
        self._start_pending = False
        task = loop.create_task(self._attempt(refetching))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _start_soon(self) -> None:
        self.start(False)

    async def load(self) -> T | None:
        """Evaluate the source and fetch.  Fetch errors are stored, not raised."""
        return await self._await(self.start(False))

    async def refetch(self, info: Any = True) -> T | None:
        """Fetch again with ``RefetchInfo.refetching`` set to *info*."""
        return await self._await(self.start(info))

    async def ready(self) -> T | None:
        """Wait until no attempt is in flight, starting a pending one."""
        if self._start_pending or (self._settled == "unresolved" and not self._tasks):
            self.start(False)
        while self._tasks:
            await asyncio.wait(set(self._tasks))
        return self.latest

    async def _await(self, task: asyncio.Task[T | None] | None) -> T | None:
        if task is None:
            return self.latest
        await asyncio.wait({task})
        if task.cancelled():
            return self.latest
        return task.result()

    def mutate(self, value: T) -> T:
        """Overwrite the value locally without fetching."""
        self._generation += 1
        self._committed = self._generation
        self._error = None
        self._settled = "ready"
        return self._storage.write(lambda _previous: value)

    def _evaluate_source(self) -> Any:
        source = self._source
        if callable(source):
            return source()
        return source

    async def _attempt(self, refetching: Any) -> T | None:
        key = self._evaluate_source()
        self._key = key
        if _is_unset_key(key):
            logger.debug("resource %r: source is unset, nothing to fetch", self.name)
            return self.latest

        self._generation += 1
        generation = self._generation
        self._in_flight += 1
        info: RefetchInfo[T] = RefetchInfo(value=self.latest, refetching=refetching)
        try:
            value = await self._fetcher(key, info)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if self._commit_allowed(generation):
                self._committed = generation
                self._error = exc
                self._settled = "errored"
                logger.debug("resource %r: fetch failed: %r", self.name, exc)
            return None
        else:
            if value is UNCHANGED:
                return self.latest
            if not self._commit_allowed(generation):
                logger.debug("resource %r: discarding superseded attempt %d", self.name, generation)
                return self.latest
            self._committed = generation
            self._error = None
            self._settled = "ready"
            return self._storage.write(lambda _previous: value)
        finally:
            self._in_flight -= 1

    def _commit_allowed(self, generation: int) -> bool:
        return not self._disposed and generation > self._committed

    def _dispose(self) -> None:
        self._disposed = True
        for task in list(self._tasks):
            task.cancel()
        clear = getattr(self._storage, "clear", None)
        if clear is not None:
            clear()

    def __repr__(self) -> str:
        return f"<Resource {self.name or ''} {self.state}>"
