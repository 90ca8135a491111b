"""What a fetcher hands back when it wants HTTP semantics, not a plain value.

A ``Response`` is frozen; ``.with_*()`` calls derive modified copies.
A redirect response returned from a fetcher (or raised through
``ResponseSignal``) is intercepted by route data instead of stored as
an ordinary result.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from perch.http.headers import Headers

LOCATION_HEADER = "Location"

REDIRECT_STATUSES: frozenset[int] = frozenset({301, 302, 303, 307, 308})
"""Status codes treated as redirects unless ``DataConfig`` overrides them."""


@dataclass(frozen=True, slots=True)
class Response:
    """Status, headers and body of an HTTP response.

    ::

        Response('{"ok": true}', content_type="application/json").with_status(201)
    """

    body: str | bytes = ""
    status: int = 200
    headers: Headers = field(default_factory=Headers)
    content_type: str = "text/html; charset=utf-8"

    def with_status(self, status: int) -> Response:
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Copy with one more header; existing values of *name* are kept."""
        return self.with_headers(((name, value),))

    def with_headers(self, headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> Response:
        return replace(self, headers=Headers((*self.headers.raw, *Headers(headers).raw)))

    def with_content_type(self, content_type: str) -> Response:
        return replace(self, content_type=content_type)

    @property
    def location(self) -> str | None:
        """The ``Location`` header, if any."""
        return self.headers.get(LOCATION_HEADER)

    @property
    def body_bytes(self) -> bytes:
        return self.body.encode("utf-8") if isinstance(self.body, str) else self.body

    @property
    def text(self) -> str:
        return self.body if isinstance(self.body, str) else self.body.decode("utf-8")

    def json(self) -> Any:
        return json.loads(self.body_bytes)


def redirect(
    url: str,
    status: int = 302,
    *,
    headers: Mapping[str, str] | Iterable[tuple[str, str]] = (),
) -> Response:
    """Build a redirect response pointing at *url*.

    The ``Location`` header comes first; extra *headers* (cookies,
    cache directives) are copied to the page response along with it
    when the redirect is intercepted on the server::

        return redirect("/login", headers={"Set-Cookie": "next=/account"})
    """
    return Response(status=status, headers=Headers(((LOCATION_HEADER, url), *Headers(headers).raw)))


def is_redirect_response(
    value: object,
    statuses: frozenset[int] = REDIRECT_STATUSES,
) -> bool:
    """True if *value* is a ``Response`` whose status is in *statuses*."""
    return isinstance(value, Response) and value.status in statuses
