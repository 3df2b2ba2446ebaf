"""Domain layer for route authorization."""

from route_rbac.domain.errors import (
    RouteAuthError,
    ConfigurationError,
    AuthorizationError,
)

__all__ = [
    "RouteAuthError",
    "ConfigurationError",
    "AuthorizationError",
]
