"""
Route Authorizer.

Two-phase authorization for HTTP pipelines:

- Pre-request guard: resolves the permissions required for the request's
  method and path and asks the policy engine whether the principal holds
  them. Unmapped routes are allowed.
- Post-response attribute filter: runs the attribute validators of every
  role the principal holds, one at a time, against the produced response
  body. Validators may mutate the body or deny the response.

Denials invoke the configured unauthorized handler. Faults raised by the
user provider, the policy engine, the role provider or a validator are
logged and propagated to the host's error channel in both phases.
"""

import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any, Awaitable, Callable, Optional, Union

from route_rbac.context import (
    AuthorizationContext,
    get_authorization_context,
    reset_authorization_context,
    set_authorization_context,
)
from route_rbac.domain.errors import AuthorizationError, ConfigurationError
from route_rbac.handlers import Continuation, default_unauthorized_handler
from route_rbac.ports.authorization import (
    PolicyEnginePort,
    UnauthorizedHandler,
    UserProviderPort,
)
from route_rbac.resolver import PermissionResolver
from route_rbac.routes import PermissionConfig, RouteRegistry

logger = logging.getLogger(__name__)


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it."""
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass
class AuthorizerOptions:
    """
    Configuration for RouteAuthorizer.

    Attributes:
        user_provider: Provider whose ``get(request)`` resolves the principal.
            Defaults to the policy engine's provider.
        routes: Initial route configuration, pattern -> permission config.
            Patterns are regular expressions tested against the request path.
        unauthorized_handler: Called as ``(request, response, call_next)``
            when a permission or attribute check denies.
            Default: sets status 403 and fails with AuthorizationError.
        filter_error_responses: Run attribute validators on responses with
            status >= 400 too.
            Default: False
    """

    user_provider: Optional[UserProviderPort] = None
    routes: Optional[Mapping[str, PermissionConfig]] = None
    unauthorized_handler: Optional[UnauthorizedHandler] = None
    filter_error_responses: bool = False

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "AuthorizerOptions":
        known = {f.name for f in fields(cls)}
        unknown = set(options) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown route authorization options: {sorted(unknown)}",
                details={"unknown": sorted(unknown)},
            )
        return cls(**options)


class RouteAuthorizer:
    """
    Authorization pipeline for one host application.

    Example usage:
    ```python
    from route_rbac import RouteAuthorizer, AuthorizerOptions

    routes = {
        # every route, every method needs 'awesome'
        ".*": "awesome",
        # every method on /funky needs 'yolo' and 'funky' as well
        "^/funky": ["yolo", "funky"],
        # per-method permissions
        "/pets/cats": {"GET": "pets.read", "DELETE": ["pets.create", "pets.delete"]},
        "/pets/dogs": {"COPY": "clever || smart"},
    }

    authorizer = RouteAuthorizer(policy_engine, AuthorizerOptions(routes=routes))
    authorizer.register_route("/api", {"GET": "read", "POST": "create"})
    ```
    """

    def __init__(
        self,
        policy_engine: PolicyEnginePort,
        options: Union[AuthorizerOptions, Mapping[str, Any], None] = None,
    ):
        if policy_engine is None or not callable(getattr(policy_engine, "check", None)):
            raise ConfigurationError(
                "Invalid policy engine: an object with a check() method is required"
            )

        if options is None:
            options = AuthorizerOptions()
        elif isinstance(options, Mapping):
            options = AuthorizerOptions.from_mapping(options)
        elif not isinstance(options, AuthorizerOptions):
            raise ConfigurationError(
                f"Invalid route authorization options: {options!r}"
            )

        # required by the response filter
        provider = getattr(policy_engine, "provider", None)
        attributes = getattr(policy_engine, "attributes", None)
        missing = [
            name
            for name, target, method in (
                ("provider.get_roles", provider, "get_roles"),
                ("provider.get_attributes", provider, "get_attributes"),
                ("attributes.validate", attributes, "validate"),
            )
            if not callable(getattr(target, method, None))
        ]
        if missing:
            raise ConfigurationError(
                f"Invalid policy engine: missing {', '.join(missing)}",
                details={"missing": missing},
            )

        self.policy_engine = policy_engine
        self.options = options
        self.user_provider = options.user_provider or getattr(
            policy_engine, "provider", None
        )
        if not callable(getattr(self.user_provider, "get", None)):
            raise ConfigurationError(
                "No user provider: pass user_provider or use a policy engine "
                "with a provider exposing get(request)"
            )
        self.unauthorized_handler: UnauthorizedHandler = (
            options.unauthorized_handler or default_unauthorized_handler
        )

        self.registry = RouteRegistry()
        self.resolver = PermissionResolver(self.registry)

        # setup the route mapping with the initial options map
        for pattern, permissions in (options.routes or {}).items():
            self.register_route(pattern, permissions)

    # ------------------------------------------------------------------
    # Route configuration
    # ------------------------------------------------------------------

    def register_route(self, pattern: str, permissions: PermissionConfig) -> None:
        """
        Add a route configuration at runtime.

        Example:
        ```python
        authorizer.register_route("/api", {"GET": "read", "POST": "create"})
        ```
        """
        self.registry.register(pattern, permissions)

    def resolve(self, path: str, method: str) -> list:
        """Get all permissions required for a request."""
        return self.resolver.resolve(path, method)

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    async def get_principal(
        self, request: Any, context: AuthorizationContext
    ) -> Any:
        """Resolve the principal once per request context."""
        if not context.has_principal:
            context.principal = await maybe_await(self.user_provider.get(request))
        return context.principal

    async def handle_unauthorized(
        self, request: Any, context: AuthorizationContext
    ) -> None:
        """
        Run the unauthorized handler.

        Returns normally only if the handler let the request through.

        Raises:
            The error the handler passed to ``call_next``, or
            AuthorizationError if it never signalled completion.
        """
        call_next = Continuation()

        # handlers read the denial marker from the current context
        token = None
        if get_authorization_context() is not context:
            token = set_authorization_context(context)
        try:
            await maybe_await(
                self.unauthorized_handler(request, context.response, call_next)
            )
        finally:
            if token is not None:
                reset_authorization_context(token)

        if not call_next.called:
            logger.warning(
                "Unauthorized handler did not signal completion for %s", context.path
            )
            raise AuthorizationError(
                f"Unauthorized: request to {context.path} was not completed",
                path=context.path,
            )
        error = call_next.error
        if error is None:
            return
        if not isinstance(error, BaseException):
            error = AuthorizationError(str(error), path=context.path)
        raise error

    def guard(
        self, permissions: list, **params: Any
    ) -> Callable[..., Awaitable[None]]:
        """
        Return a check for an explicit set of permissions.

        The policy engine is called with the request's AuthorizationContext,
        whose ``params`` carries any additional keyword arguments.

        Returns:
            An async callable ``(request, context=None)`` that returns if the
            check succeeded and runs the unauthorized handler otherwise.
        """

        async def check(
            request: Any, context: Optional[AuthorizationContext] = None
        ) -> None:
            if context is None:
                context = get_authorization_context() or AuthorizationContext(
                    request=request
                )
            context.params.update(params)

            principal = await self.get_principal(request, context)
            allowed = await maybe_await(
                self.policy_engine.check(principal, permissions, context)
            )

            if allowed:
                logger.debug(
                    "Allow request for %s with permissions %s", context.path, permissions
                )
                context.pre_checked = True
                return

            logger.warning(
                "Deny request for %s with permissions %s", context.path, permissions
            )
            context.failed = permissions
            await self.handle_unauthorized(request, context)

        return check

    # ------------------------------------------------------------------
    # Pre-request guard
    # ------------------------------------------------------------------

    async def authorize_request(
        self, request: Any, context: AuthorizationContext
    ) -> None:
        """
        Check the permissions mapped to the request's method and path.

        Returns if the request may continue to the application handler.

        Raises:
            AuthorizationError: (or the unauthorized handler's error) on denial
            Any fault raised by the user provider or the policy engine
        """
        logger.debug("Handle request for %s %s", context.method, context.path)
        permissions = self.resolve(context.path, context.method)
        context.permissions = permissions

        if not permissions:
            return

        try:
            await self.guard(permissions)(request, context)
        except Exception as e:
            # denials were already logged by the guard
            if context.failed is None:
                logger.warning(
                    "Error while checking permissions for %s: %s", context.path, e
                )
            raise

    # ------------------------------------------------------------------
    # Post-response attribute filter
    # ------------------------------------------------------------------

    async def collect_attributes(self, principal: Any) -> tuple[Any, list]:
        """Get the principal's roles and their attribute validators, in order."""
        provider = self.policy_engine.provider
        roles = await maybe_await(provider.get_roles(principal))
        role_names = list(roles.keys()) if isinstance(roles, Mapping) else list(roles or [])

        attributes: list = []
        for role in role_names:
            attributes.extend(await maybe_await(provider.get_attributes(role)) or [])
        return roles, attributes

    async def filter_response(
        self, request: Any, context: AuthorizationContext, body: Any
    ) -> Any:
        """
        Validate and transform a response body with attribute validators.

        Validators run one after another; each sees the body as left by the
        previous one. The first falsy result stops the chain.

        Returns:
            The (possibly mutated or replaced) body.

        Raises:
            AuthorizationError: (or the unauthorized handler's error) on denial
            Any fault raised while resolving or running validators
        """
        logger.debug("Handle response for %s %s", context.method, context.path)
        context.permissions = self.resolve(context.path, context.method)
        context.body = body
        context.failed = None
        context.post_phase = True

        denied = False
        try:
            principal = await self.get_principal(request, context)
            roles, attributes = await self.collect_attributes(principal)

            for attribute in attributes:
                allowed = await maybe_await(
                    self.policy_engine.attributes.validate(
                        attribute, principal, roles, context
                    )
                )
                if not allowed:
                    logger.warning(
                        "Deny in response handler for %s: %s", context.path, attribute
                    )
                    context.failed = attribute
                    denied = True
                    break
        except Exception as e:
            logger.warning("Error in response handling for %s: %s", context.path, e)
            raise

        if denied:
            await self.handle_unauthorized(request, context)

        return context.body
