"""
Authorization Ports.

Defines the interfaces of the external collaborators the route authorizer
consumes. Every method may return a plain value or an awaitable.
"""

from typing import Any, Awaitable, Mapping, Optional, Protocol, Sequence, Union


class UserProviderPort(Protocol):
    """Resolves the principal of a request."""

    def get(self, request: Any) -> Union[Any, Awaitable[Any]]:
        """
        Get the principal for a host request.

        May be called more than once per request.
        """
        ...


class RoleProviderPort(UserProviderPort, Protocol):
    """
    Resolves principals to roles and roles to attribute validators.

    Also serves as the default user provider of a policy engine.
    """

    def get_roles(
        self, principal: Any
    ) -> Union[Mapping[str, Any], Awaitable[Mapping[str, Any]]]:
        """
        Get the roles of a principal.

        Returns:
            Mapping of role name to role data; iteration order is the order
            in which role attributes are validated.
        """
        ...

    def get_attributes(
        self, role: str
    ) -> Union[Sequence[Any], Awaitable[Sequence[Any]]]:
        """Get the attribute validator references registered for a role."""
        ...


class AttributeValidatorPort(Protocol):
    """Runs attribute validators against the response being produced."""

    def validate(
        self,
        attribute: Any,
        principal: Any,
        roles: Mapping[str, Any],
        context: Any,
    ) -> Union[bool, Awaitable[bool]]:
        """
        Validate (and possibly mutate) ``context.body`` for one attribute.

        Returns:
            Truthy to allow, falsy to deny.
        """
        ...


class PolicyEnginePort(Protocol):
    """
    Port for the external policy engine.

    The engine evaluates permission expressions (including grouped and
    boolean-combined expressions) for a principal.
    """

    provider: RoleProviderPort
    attributes: AttributeValidatorPort

    def check(
        self,
        principal: Any,
        permissions: Sequence[Any],
        context: Optional[Any] = None,
    ) -> Union[bool, Awaitable[bool]]:
        """
        Check that the principal holds every permission expression.

        Args:
            principal: The resolved principal
            permissions: Ordered permission expressions, all required
            context: The request's AuthorizationContext

        Returns:
            Truthy if allowed
        """
        ...


class UnauthorizedHandler(Protocol):
    """
    Strategy invoked whenever a permission or attribute check denies.

    Must signal completion through ``call_next``: ``call_next()`` lets the
    request through, ``call_next(error)`` fails it with ``error``.
    """

    def __call__(
        self, request: Any, response: Any, call_next: Any
    ) -> Union[Any, Awaitable[Any]]:
        ...
