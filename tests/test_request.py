"""Tests for perch.http.request — immutable Request."""

import pytest

from perch.http.request import Request, parse_cookies


def _scope(**overrides) -> dict:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/account",
        "headers": [(b"cookie", b"session=abc; theme=dark"), (b"accept", b"text/html")],
        "query_string": b"tab=posts&tab=likes",
    }
    scope.update(overrides)
    return scope


class TestFromAsgi:
    def test_metadata(self) -> None:
        request = Request.from_asgi(_scope())
        assert request.method == "GET"
        assert request.path == "/account"
        assert request.headers["Accept"] == "text/html"
        assert request.cookies == {"session": "abc", "theme": "dark"}
        assert request.query == {"tab": ["posts", "likes"]}
        assert request.url == "/account?tab=posts&tab=likes"

    def test_url_without_query(self) -> None:
        assert Request.from_asgi(_scope(query_string=b"")).url == "/account"

    def test_frozen(self) -> None:
        request = Request.from_asgi(_scope())
        with pytest.raises(AttributeError):
            request.path = "/x"  # type: ignore[misc]


class TestBody:
    async def test_body_is_streamed_and_cached(self) -> None:
        messages = [
            {"type": "http.request", "body": b'{"a"', "more_body": True},
            {"type": "http.request", "body": b": 1}", "more_body": False},
        ]

        async def receive():
            return messages.pop(0)

        request = Request.from_asgi(_scope(method="POST"), receive)
        assert await request.body() == b'{"a": 1}'
        assert await request.json() == {"a": 1}
        assert await request.text() == '{"a": 1}'

    async def test_empty_body_by_default(self) -> None:
        assert await Request("GET", "/").body() == b""


class TestParseCookies:
    def test_empty(self) -> None:
        assert parse_cookies("") == {}

    def test_pairs(self) -> None:
        assert parse_cookies("a=1; b = 2 ;junk") == {"a": "1", "b": "2"}
