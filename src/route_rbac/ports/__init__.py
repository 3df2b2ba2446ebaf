"""
Ports (interfaces) consumed by the route authorizer.

These protocols describe the external policy engine, user provider,
role/attribute provider and the unauthorized handler strategy.
"""

from route_rbac.ports.authorization import (
    PolicyEnginePort,
    UserProviderPort,
    RoleProviderPort,
    AttributeValidatorPort,
    UnauthorizedHandler,
)

__all__ = [
    "PolicyEnginePort",
    "UserProviderPort",
    "RoleProviderPort",
    "AttributeValidatorPort",
    "UnauthorizedHandler",
]
