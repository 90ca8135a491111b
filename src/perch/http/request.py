"""The incoming request a server fetcher sees as ``event.request``.

Everything but the body is fixed when the request is built.  The body
is read lazily from the ASGI ``receive`` channel, once; later reads are
served from memory.
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator, Awaitable, Callable, Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs

from perch.http.headers import Headers

Receive = Callable[[], Awaitable[MutableMapping[str, Any]]]


async def _no_body() -> MutableMapping[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}


def parse_cookies(header: str) -> dict[str, str]:
    """``"a=1; b=2"`` -> ``{"a": "1", "b": "2"}``.  Pairs without ``=`` are dropped."""
    cookies: dict[str, str] = {}
    for pair in header.split(";") if header else ():
        name, sep, value = pair.partition("=")
        if sep:
            cookies[name.strip()] = value.strip()
    return cookies


@dataclass(frozen=True, slots=True)
class Request:
    """Method, path, headers, query and cookies, plus a lazily read body."""

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    query_string: str = ""
    cookies: Mapping[str, str] = field(default_factory=dict)

    _receive: Receive = field(default=_no_body, repr=False, compare=False)
    # holds the body once read; the dict itself stays mutable on a frozen instance
    _cache: dict[str, bytes] = field(default_factory=dict, repr=False, compare=False)

    @property
    def query(self) -> dict[str, list[str]]:
        """Query parameters, each mapped to every value it was given."""
        return parse_qs(self.query_string, keep_blank_values=True)

    @property
    def url(self) -> str:
        """Path with the query string appended when there is one."""
        return f"{self.path}?{self.query_string}" if self.query_string else self.path

    async def stream(self) -> AsyncGenerator[bytes, None]:
        """Yield body chunks straight from ``receive``, bypassing the cache."""
        more = True
        while more:
            message = await self._receive()
            if chunk := message.get("body", b""):
                yield chunk
            more = bool(message.get("more_body", False))

    async def body(self) -> bytes:
        """The complete body; ``receive`` is drained on the first call only."""
        if "body" not in self._cache:
            self._cache["body"] = b"".join([chunk async for chunk in self.stream()])
        return self._cache["body"]

    async def text(self) -> str:
        return (await self.body()).decode("utf-8")

    async def json(self) -> Any:
        return json.loads(await self.body())

    @classmethod
    def from_asgi(cls, scope: Mapping[str, Any], receive: Receive | None = None) -> Request:
        """Build from an ASGI HTTP scope; header bytes are decoded as latin-1."""
        headers = Headers((k.decode("latin-1"), v.decode("latin-1")) for k, v in scope.get("headers", ()))
        return cls(
            scope["method"],
            scope["path"],
            headers,
            scope.get("query_string", b"").decode("latin-1"),
            parse_cookies(headers.get("cookie") or ""),
            receive or _no_body,
        )
