"""
CSRF token handling for requests issued through a spec-built client.
"""
from __future__ import annotations

from typing import Callable, Optional

from .request import OutgoingRequest


CSRF_HEADER = "X-CSRFToken"
SAFE_METHODS = ("GET", "HEAD", "OPTIONS", "TRACE")

RequestInterceptor = Callable[[OutgoingRequest], OutgoingRequest]


def should_send_csrf(http_method: str) -> bool:
    """Returns if the given http method should send a csrftoken with the request."""
    return http_method not in SAFE_METHODS


def attach_csrf(req: OutgoingRequest, csrftoken: Optional[str]) -> OutgoingRequest:
    """
    Returns req with an X-CSRFToken header set to csrftoken if the method of req
    is an unsafe http method. Safe requests are returned as is.
    """
    if should_send_csrf(req.method):
        return req.with_header(CSRF_HEADER, csrftoken)
    return req


def csrf_interceptor(csrftoken: Optional[str]) -> RequestInterceptor:
    def intercept(req: OutgoingRequest) -> OutgoingRequest:
        return attach_csrf(req, csrftoken)

    return intercept
