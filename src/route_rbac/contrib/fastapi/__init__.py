"""
FastAPI integration for route-rbac.

Provides the route authorization middleware, per-endpoint dependencies and
exception handlers for FastAPI applications.
"""

from .dependencies import (
    get_authorization_context,
    get_authorizer,
    require_permissions,
)
from .middleware import (
    RouteAuthorizationMiddleware,
    register_app,
)
from .exception_handlers import register_exception_handlers

__all__ = [
    "get_authorization_context",
    "get_authorizer",
    "require_permissions",
    "RouteAuthorizationMiddleware",
    "register_app",
    "register_exception_handlers",
]
