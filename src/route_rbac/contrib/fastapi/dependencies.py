from typing import Optional, Callable
import logging
from fastapi import Request, Depends
from dependency_injector.wiring import inject, Provide

from route_rbac.authorizer import RouteAuthorizer
from route_rbac.context import AuthorizationContext
from route_rbac.contrib.dependency_injector import RouteAuthContainer
from route_rbac.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)


def get_authorization_context(request: Request) -> AuthorizationContext:
    """
    Get the request's authorization context.

    Creates one if the route authorization middleware is not installed.
    """
    context = getattr(request.state, "route_rbac", None)
    if context is None:
        context = AuthorizationContext(
            request=request, method=request.method, path=request.url.path
        )
        request.state.route_rbac = context
    return context


@inject
def get_authorizer(
    authorizer: Optional[RouteAuthorizer] = Provide[RouteAuthContainer.authorizer],
) -> RouteAuthorizer:
    if authorizer is None or isinstance(authorizer, Provide):
        raise ConfigurationError("RouteAuthorizer is not configured")
    return authorizer


def require_permissions(
    *permissions: str,
    authorizer: Optional[RouteAuthorizer] = None,
    **params,
) -> Callable:
    """
    Dependency factory checking an explicit permission set for one endpoint.

    Denials raise the unauthorized handler's error (AuthorizationError by
    default), handled by the registered exception handlers.

    Usage:
        @app.delete("/pets/{pet_id}", dependencies=[Depends(require_permissions("pets.delete"))])
        async def delete_pet(pet_id: str): ...
    """
    required = list(permissions)

    async def check_permissions(
        request: Request,
        context: AuthorizationContext = Depends(get_authorization_context),
    ) -> AuthorizationContext:
        resolved = authorizer or get_authorizer()
        await resolved.guard(required, **params)(request, context)
        return context

    return check_permissions
