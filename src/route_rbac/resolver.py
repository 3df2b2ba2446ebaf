"""Permission Resolver: method + path to the required permission expressions."""

import logging

from route_rbac.routes import RouteRegistry

logger = logging.getLogger(__name__)


class PermissionResolver:
    """
    Aggregates permissions from every matching route rule.

    Duplicates are kept: the policy engine receives the full ordered list.
    An empty result means the route is not mapped and must be allowed.
    """

    def __init__(self, registry: RouteRegistry):
        self.registry = registry

    def resolve(self, path: str, method: str) -> list:
        permissions = self.registry.permissions_for(path, method.upper())
        logger.debug(
            "Resolved permissions for %s %s: %s", method.upper(), path, permissions
        )
        return permissions
