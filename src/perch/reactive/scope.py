"""Ownership scopes — cleanup callbacks tied to a component's lifetime.

A ``Scope`` owns whatever is created in it: resources, signal
subscriptions, registry entries.  ``dispose()`` runs the registered
cleanups (children first, then the scope's own cleanups in reverse
registration order) and is idempotent.

Usage::

    with Scope("account-page") as scope:
        account = create_route_data(load_account, context=ctx.with_scope(scope))
        ...
    # leaving the block disposes the scope; account is unregistered
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import TracebackType

from perch.errors import ScopeDisposedError

logger = logging.getLogger("perch.reactive")


class Scope:
    """A disposable owner for cleanups and child scopes.

    Single-threaded: create, use, and dispose from the event loop thread.
    """

    __slots__ = ("_children", "_cleanups", "_disposed", "_parent", "name")

    def __init__(self, name: str | None = None, *, parent: Scope | None = None) -> None:
        self.name = name
        self._parent = parent
        self._cleanups: list[Callable[[], object]] = []
        self._children: list[Scope] = []
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def on_cleanup(self, fn: Callable[[], object]) -> Callable[[], object]:
        """Register *fn* to run when this scope is disposed.

        Returns *fn* so it can be used as a decorator.

        Raises:
            ScopeDisposedError: If the scope is already disposed.
        """
        if self._disposed:
            raise ScopeDisposedError(self.name)
        self._cleanups.append(fn)
        return fn

    def child(self, name: str | None = None) -> Scope:
        """Create a nested scope disposed together with this one."""
        if self._disposed:
            raise ScopeDisposedError(self.name)
        scope = Scope(name, parent=self)
        self._children.append(scope)
        return scope

    def dispose(self) -> None:
        """Run every cleanup once.  Later calls are no-ops.

        A failing cleanup does not stop the others; the first error is
        re-raised after all of them ran.
        """
        if self._disposed:
            return
        self._disposed = True
        first_error: Exception | None = None

        for scope in reversed(tuple(self._children)):
            try:
                scope.dispose()
            except Exception as exc:
                first_error = first_error or exc
        self._children.clear()

        while self._cleanups:
            fn = self._cleanups.pop()
            try:
                fn()
            except Exception as exc:
                logger.exception("cleanup failed in scope %r", self.name)
                first_error = first_error or exc

        if self._parent is not None and self in self._parent._children:
            self._parent._children.remove(self)

        if first_error is not None:
            raise first_error

    def __enter__(self) -> Scope:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "live"
        return f"<Scope {self.name!r} {state}>"
