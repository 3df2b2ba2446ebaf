"""
Route Registry.

Maps route patterns (regular expression sources) to per-HTTP-method
permission requirements.

Three configuration shapes are supported for a route:

- a single permission expression: ``"pets.read"`` or ``"clever || smart"``
- a sequence of expressions, all required: ``["yolo", "funky"]``
- a mapping of HTTP method to either of the above:
  ``{"GET": "pets.read", "delete": ["pets.create", "pets.delete"]}``

The first two shapes apply to every method in ``HTTP_METHODS``; a mapping
only touches the methods it lists. Registering the same pattern again appends
to the existing permission lists.
"""

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Union

from route_rbac.domain.errors import ConfigurationError
from route_rbac.http_methods import HTTP_METHODS

logger = logging.getLogger(__name__)


PermissionExpression = Union[str, Sequence[Any]]
PermissionConfig = Union[
    str,
    Sequence[PermissionExpression],
    Mapping[str, Union[str, Sequence[PermissionExpression]]],
]


def normalize_permissions(
    permissions: PermissionConfig, expand: bool = False
) -> Union[list, dict[str, Any]]:
    """
    Normalize a permission configuration.

    Args:
        permissions: A string, a sequence of expressions or a method mapping.
        expand: Applies only when ``permissions`` is not a mapping. If set,
            the resulting list is registered for every HTTP method.

    Returns:
        A mapping of method to raw config if ``permissions`` is a mapping or
        ``expand`` is set, otherwise the list of permission expressions.
    """
    if isinstance(permissions, Mapping):
        return dict(permissions)

    if isinstance(permissions, str):
        permissions = [permissions]
    elif isinstance(permissions, Sequence):
        permissions = list(permissions)
    else:
        raise ConfigurationError(
            f"Unsupported permission configuration: {permissions!r}",
            details={"type": type(permissions).__name__},
        )

    if expand:
        return {method: permissions for method in HTTP_METHODS}

    return permissions


@dataclass
class RouteRule:
    """A route pattern plus its per-method permission requirements."""

    pattern: str
    regex: re.Pattern = field(repr=False)
    method_permissions: dict[str, list] = field(default_factory=dict)

    @classmethod
    def compile(cls, pattern: str) -> "RouteRule":
        try:
            regex = re.compile(pattern)
        except (re.error, TypeError) as e:
            raise ConfigurationError(
                f"Invalid route pattern {pattern!r}: {e}",
                details={"pattern": pattern},
            ) from e
        return cls(pattern=pattern, regex=regex)

    def matches(self, path: str) -> bool:
        # search() keeps no state between calls
        return self.regex.search(path) is not None

    def permissions_for(self, method: str) -> list:
        return self.method_permissions.get(method.upper(), [])

    def extend(self, method: str, permissions: list) -> None:
        method = method.upper()
        self.method_permissions[method] = (
            self.method_permissions.get(method, []) + permissions
        )


class RouteRegistry:
    """
    Ordered collection of route rules.

    Owned by a single authorizer; registries accumulate and are never
    rewritten, so concurrent reads during traffic are safe.
    """

    def __init__(self, routes: Optional[Mapping[str, PermissionConfig]] = None):
        self._rules: dict[str, RouteRule] = {}
        for pattern, permissions in (routes or {}).items():
            self.register(pattern, permissions)

    def register(self, pattern: str, permissions: PermissionConfig) -> None:
        """
        Add a route configuration.

        Empty patterns or permissions are ignored.
        """
        if not pattern or not permissions:
            return

        per_method = normalize_permissions(permissions, expand=True)

        # Normalize everything before touching the registry
        normalized: dict[str, list] = {}
        for method, value in per_method.items():
            if not value:
                continue
            if not isinstance(method, str) or isinstance(value, Mapping):
                raise ConfigurationError(
                    f"Invalid permission mapping for route {pattern!r}",
                    details={"pattern": pattern, "method": repr(method)},
                )
            method = method.upper()
            normalized[method] = normalized.get(method, []) + normalize_permissions(
                value
            )

        rule = self._rules.get(pattern)
        if rule is None:
            rule = RouteRule.compile(pattern)
            self._rules[pattern] = rule

        for method, value in normalized.items():
            rule.extend(method, value)

        logger.debug(
            "Registered route %s for methods %s", pattern, sorted(normalized)
        )

    def permissions_for(self, path: str, method: str) -> list:
        """All permissions of every rule matching ``path``, in registration order."""
        collected: list = []
        for rule in self._rules.values():
            if rule.matches(path):
                collected.extend(rule.permissions_for(method))
        return collected

    def get(self, pattern: str) -> Optional[RouteRule]:
        return self._rules.get(pattern)

    def __contains__(self, pattern: object) -> bool:
        return pattern in self._rules

    def __iter__(self) -> Iterator[RouteRule]:
        return iter(list(self._rules.values()))

    def __len__(self) -> int:
        return len(self._rules)
