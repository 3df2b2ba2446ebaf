from functools import wraps
from typing import Callable, Optional

from route_rbac.authorizer import RouteAuthorizer
from route_rbac.context import AuthorizationContext
from route_rbac.domain.errors import AuthorizationError, ConfigurationError
from route_rbac.factory import create_default_authorizer
from .middleware import error_response


def require_permissions(
    *permissions: str, authorizer: Optional[RouteAuthorizer] = None, **params
) -> Callable:
    """
    Decorator to check an explicit permission set for an async view.

    Uses ``authorizer`` or the one of the installed
    RouteAuthorizationMiddleware (found through ``request.route_rbac``).
    """
    required = list(permissions)

    def decorator(view_func: Callable) -> Callable:
        @wraps(view_func)
        async def wrapper(request, *args, **kwargs):
            context = getattr(request, "route_rbac", None)
            if context is None:
                context = AuthorizationContext(
                    request=request, method=request.method, path=request.path
                )
                request.route_rbac = context

            resolved = authorizer or getattr(request, "route_rbac_authorizer", None)
            if resolved is None:
                resolved = create_default_authorizer()
            if resolved is None:
                raise ConfigurationError("Route authorization is not configured")

            try:
                await resolved.guard(required, **params)(request, context)
            except AuthorizationError as e:
                return error_response(e, context.response)
            return await view_func(request, *args, **kwargs)

        return wrapper

    return decorator
