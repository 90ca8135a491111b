"""Signals — a single observable value.

The smallest reactive cell: ``signal()`` reads, ``signal.set(v)``
writes and notifies subscribers when the value actually changed.
Signals double as resource storage (``read``/``write``) and as key
sources: a route-data instance keyed by a signal reloads when it is set.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from perch.reactive.scheduler import notify

T = TypeVar("T")


class Signal(Generic[T]):
    """An observable value.

    Args:
        value: Initial value.
        equals: Change predicate; defaults to ``==``.  Pass
            ``lambda a, b: False`` to notify on every write.
        name: Debug name shown in ``repr``.
    """

    __slots__ = ("_equals", "_subscribers", "_value", "name")

    def __init__(
        self,
        value: T,
        *,
        equals: Callable[[T, T], bool] | None = None,
        name: str | None = None,
    ) -> None:
        self._value = value
        self._equals = equals or (lambda a, b: a is b or a == b)
        self._subscribers: list[Callable[[T], Any]] = []
        self.name = name

    def __call__(self) -> T:
        return self._value

    def read(self) -> T:
        return self._value

    def set(self, value: T | Callable[[T], T]) -> T:
        """Write *value* (or ``value(previous)``) and notify on change."""
        if callable(value):
            value = value(self._value)
        if self._equals(self._value, value):
            return self._value
        self._value = value
        for callback in list(self._subscribers):
            notify(self._deliver, callback)
        return self._value

    write = set

    def _deliver(self, callback: Callable[[T], Any]) -> None:
        if callback in self._subscribers:
            callback(self._value)

    def subscribe(self, callback: Callable[[T], Any]) -> Callable[[], None]:
        """Call *callback(value)* after each change.  Returns an unsubscribe."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def __repr__(self) -> str:
        return f"<Signal {self.name or ''} {self._value!r}>"
