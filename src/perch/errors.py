"""Perch exception hierarchy.

Shared across the reactive primitives, the HTTP types, and route data so
every module raises and catches the same types.

Fetcher failures are *not* wrapped in any of these: whatever a fetcher
raises is stored on the resource verbatim.  Redirects are not errors at
all; ``ResponseSignal`` only exists so a fetcher can raise a response.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from perch.http.response import Response


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when configuration or route context is invalid.

    Typically raised from ``DataConfig.__post_init__`` or when a client
    context is built without its navigation collaborators.
    """


class ScopeDisposedError(PerchError):
    """Raised when work is attached to a scope that was already disposed."""

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        detail = f"scope {name!r} is disposed" if name else "scope is disposed"
        super().__init__(detail)


class ResponseSignal(PerchError):  # noqa: N818
    """Carries a ``Response`` out of a fetcher by raising it.

    Route data treats a raised response exactly like a returned one:
    redirects are intercepted and the response becomes the resource
    value instead of its error::

        async def load_account(key, event):
            if not event.request.cookies.get("session"):
                raise ResponseSignal(redirect("/login"))
            ...
    """

    def __init__(self, response: Response) -> None:
        self.response = response
        super().__init__(response)

    def __str__(self) -> str:
        location = self.response.location
        if location:
            return f"{self.response.status} -> {location}"
        return str(self.response.status)
