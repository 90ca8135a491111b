"""HTTP value types consumed by route data."""

from perch.http.fetch import HTTPFetch
from perch.http.headers import Headers, MutableHeaders
from perch.http.request import Request
from perch.http.response import (
    LOCATION_HEADER,
    REDIRECT_STATUSES,
    Response,
    is_redirect_response,
    redirect,
)

__all__ = [
    "LOCATION_HEADER",
    "REDIRECT_STATUSES",
    "HTTPFetch",
    "Headers",
    "MutableHeaders",
    "Request",
    "Response",
    "is_redirect_response",
    "redirect",
]
