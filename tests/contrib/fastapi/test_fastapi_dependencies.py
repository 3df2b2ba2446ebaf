"""
Tests for FastAPI per-endpoint permission dependencies.
"""

import pytest
from unittest.mock import AsyncMock
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from route_rbac.authorizer import RouteAuthorizer
from route_rbac.context import AuthorizationContext
from route_rbac.contrib.fastapi import (
    get_authorization_context,
    get_authorizer,
    register_app,
    register_exception_handlers,
    require_permissions,
)
from route_rbac.domain.errors import ConfigurationError


def create_app(authorizer, with_middleware=True):
    app = FastAPI()
    if with_middleware:
        register_app(app, authorizer)
    else:
        register_exception_handlers(app)

    @app.delete(
        "/pets/{pet_id}",
        dependencies=[Depends(require_permissions("update", authorizer=authorizer))],
    )
    def delete_pet(pet_id: str):
        return {"deleted": pet_id}

    @app.get("/reports")
    def reports(
        context: AuthorizationContext = Depends(
            require_permissions("read", authorizer=authorizer, scope="reports")
        ),
    ):
        return {"params": context.params, "pre_checked": context.pre_checked}

    return app


def test_require_permissions_allows(policy_engine):
    client = TestClient(create_app(RouteAuthorizer(policy_engine)))

    response = client.delete("/pets/1", headers={"X-User": "yummy"})

    assert response.status_code == 200
    assert response.json()["deleted"] == "1"


def test_require_permissions_denies(policy_engine):
    client = TestClient(create_app(RouteAuthorizer(policy_engine)))

    response = client.delete("/pets/1", headers={"X-User": "tummy"})

    assert response.status_code == 403
    assert response.json()["details"]["permission"] == ["update"]


def test_require_permissions_without_middleware(policy_engine):
    client = TestClient(
        create_app(RouteAuthorizer(policy_engine), with_middleware=False)
    )

    denied = client.delete("/pets/1", headers={"X-User": "plummy"})
    allowed = client.get("/reports", headers={"X-User": "plummy"})

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json() == {"params": {"scope": "reports"}, "pre_checked": True}


def test_require_permissions_fault(mock_policy_engine):
    mock_policy_engine.check = AsyncMock(side_effect=RuntimeError("down"))
    client = TestClient(
        create_app(RouteAuthorizer(mock_policy_engine), with_middleware=False),
        raise_server_exceptions=False,
    )

    response = client.get("/reports")

    assert response.status_code == 500


def test_get_authorizer_requires_wiring():
    with pytest.raises(ConfigurationError):
        get_authorizer()


def test_get_authorization_context_creates_one():
    app = FastAPI()

    @app.get("/ctx")
    def ctx(context: AuthorizationContext = Depends(get_authorization_context)):
        return {"method": context.method, "path": context.path}

    response = TestClient(app).get("/ctx")

    assert response.json() == {"method": "GET", "path": "/ctx"}
