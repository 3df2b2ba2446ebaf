"""
Per-request authorization context.

Uses contextvars for request-scoped data propagation. One context is
created by the host adapter for every request and reset when the request
completes.
"""

from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class ResponseState:
    """
    Response values the authorization layer may change.

    The host adapter applies these to the response it finally sends.
    """

    status_code: Optional[int] = None
    headers: dict[str, str] = field(default_factory=dict)


_UNSET = object()


@dataclass
class AuthorizationContext:
    """
    Request-scoped authorization state.

    Passed as the context argument to the policy engine check and to every
    attribute validator. Validators read and mutate ``body``.

    Attributes:
        request: The host framework request object
        method: Upper-cased HTTP method
        path: Request path used for route matching
        response: Mutable response status/headers set by the authorization layer
        host_response: The response produced by the application (post-phase only)
        permissions: Permissions resolved for the current phase
        body: Response body being filtered (post-phase only)
        params: Extra values supplied to an explicit guard
        failed: The permission set or attribute that caused a denial
        pre_checked: Set once the pre-phase policy check allowed the request
        post_phase: Set while the response filter runs
    """

    request: Any = None
    method: str = "GET"
    path: str = "/"
    response: ResponseState = field(default_factory=ResponseState)
    host_response: Any = None
    permissions: list = field(default_factory=list)
    body: Any = None
    params: dict[str, Any] = field(default_factory=dict)
    failed: Any = None
    pre_checked: bool = False
    post_phase: bool = False
    _principal: Any = field(default=_UNSET, init=False, repr=False)

    def __post_init__(self):
        self.method = self.method.upper()

    @property
    def has_principal(self) -> bool:
        return self._principal is not _UNSET

    @property
    def principal(self) -> Any:
        return None if self._principal is _UNSET else self._principal

    @principal.setter
    def principal(self, value: Any) -> None:
        self._principal = value


# Global context variable for request-scoped data
authorization_context: ContextVar[Optional[AuthorizationContext]] = ContextVar(
    "route_rbac_authorization_context", default=None
)


def get_authorization_context() -> Optional[AuthorizationContext]:
    """Get the current request's authorization context, if any."""
    return authorization_context.get()


def set_authorization_context(context: AuthorizationContext) -> Token:
    return authorization_context.set(context)


def reset_authorization_context(token: Token) -> None:
    authorization_context.reset(token)
