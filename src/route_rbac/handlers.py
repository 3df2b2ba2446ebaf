"""
Unauthorized handler strategy.

The handler is called with ``(request, response, call_next)`` whenever a
permission check or attribute validator denies. ``response`` is the
request's ``ResponseState``.
"""

import logging
from typing import Any

from route_rbac.context import ResponseState, get_authorization_context
from route_rbac.domain.errors import AuthorizationError

logger = logging.getLogger(__name__)

HTTP_403_FORBIDDEN = 403


class Continuation:
    """
    Completion signal handed to unauthorized handlers as ``call_next``.

    Records whether the handler completed and with which error. A value
    that is not an exception is used as the denial message.
    """

    def __init__(self):
        self.called = False
        self.error: Any = None

    def __call__(self, error: Any = None) -> None:
        self.called = True
        self.error = error


def default_unauthorized_handler(
    request: Any, response: ResponseState, call_next: Continuation
) -> None:
    """Set status 403 and fail the request with an AuthorizationError."""
    response.status_code = HTTP_403_FORBIDDEN

    context = get_authorization_context()
    failed = context.failed if context else None
    path = context.path if context else None

    if context is not None and context.post_phase:
        permission, attribute = None, failed
    else:
        permission, attribute = failed, None

    described = _describe(failed) if failed is not None else "a permission"
    call_next(
        AuthorizationError(
            f"Unauthorized: Permission validation for {path} failed for {described}",
            permission=permission,
            attribute=attribute,
            path=path,
        )
    )


def _describe(failed: Any) -> str:
    if isinstance(failed, str):
        return failed
    if callable(failed):
        return getattr(failed, "__name__", repr(failed))
    return repr(failed)
