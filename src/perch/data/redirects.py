"""Redirect interception for route data fetches.

A fetcher ends in one of three ways, modelled as an ``Outcome``:

- ``Value``: a plain result (including a non-redirect ``Response``);
- ``Redirect``: a redirect ``Response``, returned or raised through
  ``ResponseSignal``;
- ``Failure``: any other exception.

``RedirectInterceptor.intercept`` turns an outcome into the value the
resource stores.  Redirects never become resource errors: the response
itself is stored, and the navigation side effects run

- synchronously on the server, where they set the page status and copy
  the redirect's headers onto the page response;
- on the next loop turn on the client, where a same-origin path is a
  router ``replace`` navigation and anything else is a full browser
  navigation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any, TypeAlias

from perch.errors import ResponseSignal
from perch.http.response import REDIRECT_STATUSES, Response, is_redirect_response

if TYPE_CHECKING:
    from perch.context import RouteContext

logger = logging.getLogger("perch.data")


@dataclass(frozen=True, slots=True)
class Value:
    value: Any


@dataclass(frozen=True, slots=True)
class Redirect:
    """A redirect response and whether the fetcher raised it."""

    response: Response
    raised: bool = False


@dataclass(frozen=True, slots=True)
class Failure:
    error: Exception


Outcome: TypeAlias = Value | Redirect | Failure


def classify_result(result: Any, statuses: frozenset[int] = REDIRECT_STATUSES) -> Value | Redirect:
    """Outcome of a fetcher that returned *result*."""
    if is_redirect_response(result, statuses):
        return Redirect(result)
    return Value(result)


def classify_error(exc: Exception, statuses: frozenset[int] = REDIRECT_STATUSES) -> Outcome:
    """Outcome of a fetcher that raised *exc*.

    A raised response is a result, not a failure: redirects become
    ``Redirect`` and any other response becomes ``Value``.
    """
    if isinstance(exc, ResponseSignal):
        if is_redirect_response(exc.response, statuses):
            return Redirect(exc.response, raised=True)
        return Value(exc.response)
    return Failure(exc)


class RedirectInterceptor:
    """Applies redirect side effects for one route context."""

    __slots__ = ("_context",)

    def __init__(self, context: RouteContext) -> None:
        self._context = context

    @property
    def statuses(self) -> frozenset[int]:
        return self._context.config.redirect_statuses

    def intercept(self, outcome: Outcome) -> Any:
        """Return the value to store for *outcome*, or raise its failure."""
        match outcome:
            case Failure(error=error):
                raise error
            case Value(value=value):
                return value
            case Redirect(response=response, raised=raised):
                logger.info(
                    "intercepted %s redirect to %r%s",
                    response.status,
                    response.headers.get(self._context.config.location_header),
                    " (raised)" if raised else "",
                )
                if self._context.is_server:
                    self.handle(response)
                else:
                    self._context.scheduler.defer(partial(self.handle, response))
                return response

    def handle(self, response: Response) -> None:
        """Perform navigation and page-response side effects for *response*."""
        if not is_redirect_response(response, self.statuses):
            return

        context = self._context
        url = response.headers.get(context.config.location_header)
        if url is None:
            logger.warning("redirect %s has no %s header", response.status, context.config.location_header)
        elif url.startswith("/"):
            navigate = context.navigate
            if navigate is not None:
                context.scheduler.transition(lambda: navigate(url, replace=True))
            else:
                logger.debug("no router navigation available for %r", url)
        elif not context.is_server and context.assign_location is not None:
            context.assign_location(url)

        if context.is_server:
            page = context.page
            page.set_status_code(response.status)
            for name, value in response.headers.items():
                page.response_headers.set(name, value)
