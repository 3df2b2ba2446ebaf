"""
Pytest configuration for py-route-rbac tests.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from route_rbac.ports.authorization import PolicyEnginePort


# -----------------------------------------------------------------------------
# IN-MEMORY POLICY ENGINE
# -----------------------------------------------------------------------------


RULES = {
    "roles": {
        "guest": {"permissions": ["create"], "attributes": ["attribute_deny"]},
        "reader": {"permissions": ["read"], "inherited": ["guest"]},
        "writer": {
            "permissions": ["create"],
            "inherited": ["reader"],
            "attributes": ["attribute1", "attribute2"],
        },
        "editor": {"permissions": ["update"], "inherited": ["reader"]},
        "auditor": {"permissions": ["read", "create"], "attributes": ["attribute_deny"]},
    },
    "users": {
        "dummy": ["guest"],
        "plummy": ["reader"],
        "tummy": ["reader", "writer"],
        "yummy": ["writer", "editor"],
        "rummy": ["auditor"],
    },
}

ROUTES = {
    ".*": "read",
    "/pets": "create",
    "/pets/cats": ["create", "update"],
    "/pets/dogs": {"get": "create", "post": ["sniff", "wuff"]},
}


def attribute1(user, roles, context):
    if context.body is not None:
        context.body["seen1"] = context.post_phase
    return True


async def attribute2(user, roles, context):
    if context.body.get("seen1"):
        context.body["seen2"] = True
    return True


def attribute_deny(user, roles, context):
    return False


class JsonRoleProvider:
    """Role provider backed by a rules dict; the user comes from a header."""

    def __init__(self, rules):
        self.rules = rules

    def get(self, request):
        return request.headers.get("x-user")

    def _hierarchy(self, role, seen):
        if role in seen:
            return {}
        seen = seen | {role}
        inherited = self.rules["roles"].get(role, {}).get("inherited", [])
        return {parent: self._hierarchy(parent, seen) for parent in inherited}

    async def get_roles(self, user):
        return {
            role: self._hierarchy(role, frozenset())
            for role in self.rules["users"].get(user, [])
        }

    def get_attributes(self, role):
        return list(self.rules["roles"].get(role, {}).get("attributes", []))

    def get_permissions(self, role):
        return list(self.rules["roles"].get(role, {}).get("permissions", []))


class AttributeRegistry:
    def __init__(self):
        self.validators = {}

    def set(self, func):
        self.validators[func.__name__] = func

    def validate(self, attribute, user, roles, context):
        return self.validators[attribute](user, roles, context)


class InMemoryPolicyEngine:
    """Evaluates 'a', 'a && b', 'a || b' and grouped lists against role permissions."""

    def __init__(self, rules):
        self.provider = JsonRoleProvider(rules)
        self.attributes = AttributeRegistry()

    def _granted(self, roles):
        granted = set()
        for role, inherited in roles.items():
            granted.update(self.provider.get_permissions(role))
            granted.update(self._granted(inherited))
        return granted

    def _holds(self, expression, granted):
        if isinstance(expression, (list, tuple)):
            return all(self._holds(e, granted) for e in expression)
        return any(
            all(token.strip() in granted for token in alternative.split("&&"))
            for alternative in expression.split("||")
        )

    async def check(self, user, permissions, context=None):
        granted = self._granted(await self.provider.get_roles(user))
        return all(self._holds(p, granted) for p in permissions)


@pytest.fixture
def routes():
    return dict(ROUTES)


@pytest.fixture
def policy_engine():
    engine = InMemoryPolicyEngine(RULES)
    engine.attributes.set(attribute1)
    engine.attributes.set(attribute2)
    engine.attributes.set(attribute_deny)
    return engine


# -----------------------------------------------------------------------------
# MOCKS
# -----------------------------------------------------------------------------


@pytest.fixture
def mock_policy_engine():
    mock = MagicMock(spec=PolicyEnginePort)
    mock.check = AsyncMock(return_value=True)
    mock.provider = MagicMock()
    mock.provider.get = AsyncMock(return_value="alice")
    mock.provider.get_roles = AsyncMock(return_value={})
    mock.provider.get_attributes = AsyncMock(return_value=[])
    mock.attributes = MagicMock()
    mock.attributes.validate = AsyncMock(return_value=True)
    return mock
