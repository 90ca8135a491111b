"""Deep-reconciling storage for fetched values.

A refetch usually returns a payload that is mostly identical to the
previous one.  Storing the new object wholesale would invalidate every
observer; ``DeepReconcilingCell`` diffs the new value against the stored
one and patches only the paths that differ, notifying only their
subscribers.

Paths are tuples of mapping keys and list indices relative to the
stored value, ``()`` being the value itself::

    cell = DeepReconcilingCell({"user": {"name": "ada", "posts": 3}})
    cell.subscribe(("user", "name"), on_name)
    cell.subscribe(("user",), on_user, deep=True)

    cell.write({"user": {"name": "ada", "posts": 4}})
    # on_user fires (something below "user" changed); on_name does not

Subscriber rules:

- an exact-path subscriber fires when the value at its path, or at any
  ancestor of it, is replaced, and when the container at its path gains
  or loses keys or changes length;
- a ``deep=True`` subscriber additionally fires when anything below its
  path changed;
- every subscriber fires at most once per write (once per ``batch()``).

Only exact ``dict`` and ``list`` containers are looked into and copied.
Anything else (tuples, named tuples, dataclasses, other mappings) is a
leaf: stored as given and replaced whole when it compares unequal.
Treat what ``read()`` returns as read-only.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from functools import partial
from typing import Any, Generic, TypeVar

from perch.data.keys import scalar_equal
from perch.reactive.scheduler import notify

logger = logging.getLogger("perch.data")

T = TypeVar("T")

Path = tuple[Hashable, ...]


@dataclass(frozen=True, slots=True)
class ReconcileOptions:
    """How lists of records are matched up during reconciliation.

    Attributes:
        key: Field identifying a record inside a list.  When every item
            of both the old and the new list carries it, items are
            matched by identity instead of position, so a reordered
            record keeps its stored object.  ``None`` disables keyed
            matching.
        merge: Patch records in place even when their identity field
            changed (positional merge) instead of replacing them.
    """

    key: str | None = "id"
    merge: bool = False


@dataclass(frozen=True, slots=True)
class _Subscriber:
    path: Path
    callback: Callable[[Path], Any]
    deep: bool


@dataclass(slots=True)
class _Changes:
    replaced: list[Path]
    reshaped: list[Path]

    def __bool__(self) -> bool:
        return bool(self.replaced or self.reshaped)


def _is_wrappable(value: Any) -> bool:
    return type(value) is dict or type(value) is list


def clone(value: Any) -> Any:
    """Copy the dicts and lists in *value*, leaving leaves shared."""
    if type(value) is dict:
        return {k: clone(v) for k, v in value.items()}
    if type(value) is list:
        return [clone(v) for v in value]
    return value


def _is_prefix(prefix: Path, path: Path) -> bool:
    return path[: len(prefix)] == prefix


def _identity(item: Any, key: str) -> Hashable | None:
    if type(item) is not dict or key not in item:
        return None
    ident = item[key]
    try:
        hash(ident)
    except TypeError:
        return None
    return ident


class DeepReconcilingCell(Generic[T]):
    """Observable storage that applies writes as structural patches.

    Args:
        value: Initial value (copied).
        options: List-matching rules, see ``ReconcileOptions``.
    """

    __slots__ = ("_options", "_state", "_subscribers")

    def __init__(self, value: T | None = None, *, options: ReconcileOptions | None = None) -> None:
        self._options = options or ReconcileOptions()
        self._state: dict[str, Any] = {"value": clone(value)}
        self._subscribers: list[_Subscriber] = []

    @classmethod
    def factory(cls, options: ReconcileOptions | None = None) -> Callable[[Any], DeepReconcilingCell[Any]]:
        """Storage factory for ``Resource(storage=...)``."""
        return partial(cls, options=options)

    # -- Storage interface --

    def read(self) -> T:
        return self._state["value"]

    def write(self, value: T | Callable[[T], T]) -> T:
        """Reconcile *value* (or ``value(previous)``) into storage.

        An updater receives a plain copy of the previous value.  Returns
        the stored value after the patch.
        """
        if callable(value):
            value = value(clone(self._state["value"]))
        changes = _Changes(replaced=[], reshaped=[])
        self._apply(self._state, "value", value, (), changes)
        if changes:
            self._dispatch(changes)
        return self._state["value"]

    def clear(self) -> None:
        """Drop the value and every subscriber without notifying."""
        self._subscribers.clear()
        self._state["value"] = None

    def subscribe(
        self,
        path: Path,
        callback: Callable[[Path], Any],
        *,
        deep: bool = False,
    ) -> Callable[[], None]:
        """Call ``callback(path)`` when *path* changes.  Returns an unsubscribe."""
        subscriber = _Subscriber(tuple(path), callback, deep)
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    # -- Reconciliation --

    def _apply(self, parent: Any, prop: Hashable, nxt: Any, path: Path, changes: _Changes) -> None:
        prev = parent[prop]
        if prev is nxt:
            return

        if not _is_wrappable(prev) or type(prev) is not type(nxt):
            if _is_wrappable(prev) or _is_wrappable(nxt) or not scalar_equal(prev, nxt):
                parent[prop] = clone(nxt)
                changes.replaced.append(path)
            return

        if type(prev) is dict:
            self._apply_record(parent, prop, prev, nxt, path, changes)
        else:
            self._apply_sequence(prev, nxt, path, changes)

    def _apply_record(
        self,
        parent: Any,
        prop: Hashable,
        prev: dict[Any, Any],
        nxt: dict[Any, Any],
        path: Path,
        changes: _Changes,
    ) -> None:
        key = self._options.key
        if (
            path
            and key is not None
            and not self._options.merge
            and key in prev
            and key in nxt
            and not scalar_equal(prev[key], nxt[key])
        ):
            # a different entity, not an edit of this one; the root is always patched
            parent[prop] = clone(nxt)
            changes.replaced.append(path)
            return

        reshaped = False
        for k, v in nxt.items():
            if k in prev:
                self._apply(prev, k, v, (*path, k), changes)
            else:
                prev[k] = clone(v)
                changes.replaced.append((*path, k))
                reshaped = True
        for k in [k for k in prev if k not in nxt]:
            del prev[k]
            changes.replaced.append((*path, k))
            reshaped = True
        if reshaped:
            changes.reshaped.append(path)

    def _apply_sequence(self, prev: list[Any], nxt: list[Any], path: Path, changes: _Changes) -> None:
        key = self._options.key
        old_len = len(prev)
        keyed = (
            key is not None
            and not self._options.merge
            and all(_identity(item, key) is not None for item in prev)
            and all(_identity(item, key) is not None for item in nxt)
        )

        if keyed:
            assert key is not None
            by_identity: dict[Hashable, Any] = {}
            for item in prev:
                by_identity.setdefault(_identity(item, key), item)
            result: list[Any] = []
            for i, item in enumerate(nxt):
                existing = by_identity.pop(_identity(item, key), None)
                if existing is None:
                    stored = clone(item)
                else:
                    holder = [existing]
                    self._apply(holder, 0, item, (*path, i), changes)
                    stored = holder[0]
                if i >= old_len or prev[i] is not stored:
                    changes.replaced.append((*path, i))
                result.append(stored)
            for i in range(len(nxt), old_len):
                changes.replaced.append((*path, i))
            prev[:] = result
        else:
            for i, item in enumerate(nxt):
                if i < old_len:
                    self._apply(prev, i, item, (*path, i), changes)
                else:
                    prev.append(clone(item))
                    changes.replaced.append((*path, i))
            for i in range(len(nxt), old_len):
                changes.replaced.append((*path, i))
            del prev[len(nxt):]

        if len(nxt) != old_len:
            changes.reshaped.append(path)

    # -- Notification --

    def _dispatch(self, changes: _Changes) -> None:
        replaced = set(changes.replaced)
        touched = replaced | set(changes.reshaped)
        logger.debug("reconciled %d changed path(s)", len(touched))
        for subscriber in list(self._subscribers):
            if self._affects(subscriber, replaced, touched):
                notify(subscriber.callback, subscriber.path)

    @staticmethod
    def _affects(subscriber: _Subscriber, replaced: set[Path], touched: set[Path]) -> bool:
        path = subscriber.path
        if path in touched:
            return True
        if any(path[:i] in replaced for i in range(len(path))):
            return True
        if subscriber.deep:
            return any(_is_prefix(path, changed) for changed in touched)
        return False

    def __repr__(self) -> str:
        return f"DeepReconcilingCell({self._state['value']!r})"
