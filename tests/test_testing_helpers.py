"""Tests for perch.testing — recording navigators and context builders."""

from perch.testing import (
    RecordingLocation,
    RecordingNavigator,
    client_context,
    make_request,
    server_context,
)


class TestRecorders:
    def test_navigator_records_calls(self) -> None:
        navigator = RecordingNavigator()
        navigator("/a")
        navigator("/b", replace=True)
        assert navigator.calls == [("/a", False), ("/b", True)]

    def test_location_href(self) -> None:
        location = RecordingLocation()
        assert location.href is None
        location("https://example.com/")
        assert location.href == "https://example.com/"


class TestBuilders:
    def test_make_request(self) -> None:
        request = make_request("/inbox", method="POST", headers={"Accept": "*/*"}, cookies={"s": "1"})
        assert request.method == "POST"
        assert request.path == "/inbox"
        assert request.headers["accept"] == "*/*"
        assert request.cookies == {"s": "1"}

    def test_server_context(self) -> None:
        ctx, page, navigator = server_context("/account", env={"region": "eu"})
        assert ctx.is_server
        assert ctx.page is page
        assert ctx.navigate is navigator
        assert page.request.path == "/account"
        assert page.env == {"region": "eu"}
        assert page.status_code == 200

    def test_client_context(self) -> None:
        ctx, navigator, location = client_context(page={"route": "/"})
        assert not ctx.is_server
        assert ctx.page == {"route": "/"}
        assert ctx.navigate is navigator
        assert ctx.assign_location is location
