"""
py-route-rbac: Route-based RBAC authorization for HTTP pipelines.

Maps route patterns to permission requirements, checks them with an external
policy engine before the application runs, and filters JSON responses with
per-role attribute validators afterwards.
"""

__version__ = "0.1.0"

from route_rbac.http_methods import HTTP_METHODS
from route_rbac.routes import (
    RouteRule,
    RouteRegistry,
    normalize_permissions,
)
from route_rbac.resolver import PermissionResolver
from route_rbac.context import (
    AuthorizationContext,
    ResponseState,
    authorization_context,
    get_authorization_context,
)
from route_rbac.handlers import (
    Continuation,
    default_unauthorized_handler,
)
from route_rbac.authorizer import (
    RouteAuthorizer,
    AuthorizerOptions,
    maybe_await,
)
from route_rbac.domain.errors import (
    RouteAuthError,
    ConfigurationError,
    AuthorizationError,
)
from route_rbac.ports import (
    PolicyEnginePort,
    UserProviderPort,
    RoleProviderPort,
    AttributeValidatorPort,
    UnauthorizedHandler,
)

__all__ = [
    "HTTP_METHODS",
    # Routes
    "RouteRule",
    "RouteRegistry",
    "normalize_permissions",
    "PermissionResolver",
    # Context
    "AuthorizationContext",
    "ResponseState",
    "authorization_context",
    "get_authorization_context",
    # Pipeline
    "RouteAuthorizer",
    "AuthorizerOptions",
    "Continuation",
    "default_unauthorized_handler",
    "maybe_await",
    # Errors
    "RouteAuthError",
    "ConfigurationError",
    "AuthorizationError",
    # Ports
    "PolicyEnginePort",
    "UserProviderPort",
    "RoleProviderPort",
    "AttributeValidatorPort",
    "UnauthorizedHandler",
]
