"""
Django integration for route-rbac.

Provides the route authorization middleware and view decorators.
"""

from .middleware import (
    RouteAuthorizationMiddleware,
    error_response,
)
from .decorators import require_permissions

__all__ = [
    "RouteAuthorizationMiddleware",
    "error_response",
    "require_permissions",
]
