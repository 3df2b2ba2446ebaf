"""
Tests for the FastAPI route authorization middleware using TestClient.
"""

import pytest
from unittest.mock import AsyncMock
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.testclient import TestClient

from route_rbac.authorizer import AuthorizerOptions, RouteAuthorizer
from route_rbac.context import get_authorization_context
from route_rbac.contrib.fastapi import RouteAuthorizationMiddleware, register_app
from route_rbac.domain.errors import AuthorizationError, ConfigurationError


@pytest.fixture
def authorizer(policy_engine, routes):
    return RouteAuthorizer(policy_engine, AuthorizerOptions(routes=routes))


def create_app(authorizer):
    app = register_app(FastAPI(), authorizer)

    @app.get("/pets")
    def pets():
        return {"a": "a"}

    @app.get("/cars")
    def cars():
        return {"wheels": 4}

    @app.get("/pets/text")
    def text():
        return PlainTextResponse("plain")

    @app.get("/pets/missing")
    def missing():
        return JSONResponse({"detail": "gone"}, status_code=404)

    @app.post("/pets")
    def create_pet():
        return JSONResponse(
            {"id": 1}, status_code=201, headers={"Location": "/pets/1"}
        )

    @app.get("/pets/context")
    def context(request: Request):
        current = get_authorization_context()
        return {
            "same": current is request.state.route_rbac,
            "pre_checked": current.pre_checked,
        }

    return app


# -----------------------------------------------------------------------------
# Pre-request guard
# -----------------------------------------------------------------------------


def test_denies_access_to_a_route(authorizer):
    client = TestClient(create_app(authorizer))

    response = client.get("/pets", headers={"X-User": "dummy"})

    assert response.status_code == 403
    body = response.json()
    assert "a" not in body
    assert body["error"] == "PERMISSION_DENIED"
    assert body["details"]["permission"] == ["read", "create"]


def test_allows_access_to_a_route(authorizer):
    client = TestClient(create_app(authorizer))

    response = client.get("/pets", headers={"X-User": "tummy"})

    assert response.status_code == 200
    assert response.json()["a"] == "a"


def test_unmapped_route_is_allowed(mock_policy_engine):
    authorizer = RouteAuthorizer(mock_policy_engine, {"routes": {"^/pets": "read"}})
    client = TestClient(create_app(authorizer))

    response = client.get("/cars")

    assert response.status_code == 200
    assert response.json() == {"wheels": 4}
    mock_policy_engine.check.assert_not_called()


def test_context_is_visible_to_endpoints(authorizer):
    client = TestClient(create_app(authorizer))

    response = client.get("/pets/context", headers={"X-User": "tummy"})

    assert response.json()["same"] is True
    assert response.json()["pre_checked"] is True


def test_pre_phase_fault_reaches_error_channel(mock_policy_engine):
    mock_policy_engine.check = AsyncMock(side_effect=RuntimeError("engine down"))
    authorizer = RouteAuthorizer(mock_policy_engine, {"routes": {"/pets": "read"}})
    client = TestClient(create_app(authorizer), raise_server_exceptions=False)

    response = client.get("/pets")

    assert response.status_code == 500


def test_custom_handler_status(policy_engine, routes):
    async def login_required(request, response, call_next):
        response.status_code = 401
        response.headers["WWW-Authenticate"] = "Bearer"
        call_next(AuthorizationError("login first"))

    authorizer = RouteAuthorizer(
        policy_engine,
        AuthorizerOptions(routes=routes, unauthorized_handler=login_required),
    )
    client = TestClient(create_app(authorizer))

    response = client.get("/pets", headers={"X-User": "dummy"})

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"
    assert response.json()["message"] == "login first"


# -----------------------------------------------------------------------------
# Post-response attribute filter
# -----------------------------------------------------------------------------


def test_performs_response_transformation(authorizer):
    client = TestClient(create_app(authorizer))

    response = client.get("/pets", headers={"X-User": "tummy"})

    assert response.status_code == 200
    body = response.json()
    assert body["a"] == "a"
    assert body["seen1"] is True
    assert body["seen2"] is True
    assert int(response.headers["content-length"]) == len(response.content)


def test_denies_if_an_attribute_denies(authorizer):
    client = TestClient(create_app(authorizer))

    response = client.get("/pets", headers={"X-User": "rummy"})

    assert response.status_code == 403
    body = response.json()
    assert "a" not in body
    assert body["details"]["attribute"] == "attribute_deny"


def test_non_json_responses_are_not_filtered(authorizer):
    client = TestClient(create_app(authorizer))

    response = client.get("/pets/text", headers={"X-User": "rummy"})

    assert response.status_code == 200
    assert response.text == "plain"


def test_error_responses_are_not_filtered(authorizer):
    client = TestClient(create_app(authorizer))

    response = client.get("/pets/missing", headers={"X-User": "rummy"})

    assert response.status_code == 404
    assert response.json() == {"detail": "gone"}


def test_error_responses_filtered_when_enabled(policy_engine, routes):
    authorizer = RouteAuthorizer(
        policy_engine,
        AuthorizerOptions(routes=routes, filter_error_responses=True),
    )
    client = TestClient(create_app(authorizer))

    response = client.get("/pets/missing", headers={"X-User": "rummy"})

    assert response.status_code == 403


def test_post_phase_fault_reaches_error_channel(mock_policy_engine):
    mock_policy_engine.provider.get_roles = AsyncMock(side_effect=RuntimeError("down"))
    authorizer = RouteAuthorizer(mock_policy_engine)
    client = TestClient(create_app(authorizer), raise_server_exceptions=False)

    response = client.get("/cars")

    assert response.status_code == 500
    assert "wheels" not in response.text


def test_handler_headers_apply_to_unfiltered_responses(policy_engine, routes):
    async def warn_only(request, response, call_next):
        response.headers["X-Auth-Warning"] = "degraded"
        call_next()

    authorizer = RouteAuthorizer(
        policy_engine,
        AuthorizerOptions(routes=routes, unauthorized_handler=warn_only),
    )
    client = TestClient(create_app(authorizer))

    text = client.get("/pets/text", headers={"X-User": "dummy"})
    missing = client.get("/pets/missing", headers={"X-User": "dummy"})

    assert text.status_code == 200
    assert text.text == "plain"
    assert text.headers["x-auth-warning"] == "degraded"
    assert missing.status_code == 404
    assert missing.headers["x-auth-warning"] == "degraded"


def test_handler_status_applies_to_filtered_responses(policy_engine, routes):
    async def accepted(request, response, call_next):
        response.status_code = 202
        call_next()

    authorizer = RouteAuthorizer(
        policy_engine,
        AuthorizerOptions(routes=routes, unauthorized_handler=accepted),
    )
    client = TestClient(create_app(authorizer))

    response = client.get("/pets", headers={"X-User": "dummy"})

    assert response.status_code == 202
    assert response.json()["a"] == "a"


def test_validators_see_the_application_response(mock_policy_engine):
    seen = {}

    def record(attribute, principal, roles, context):
        seen["status"] = context.host_response.status_code
        seen["location"] = context.host_response.headers.get("location")
        seen["state"] = context.response.status_code
        return True

    mock_policy_engine.provider.get_roles = AsyncMock(return_value={"owner": {}})
    mock_policy_engine.provider.get_attributes = AsyncMock(return_value=["record"])
    mock_policy_engine.attributes.validate = AsyncMock(side_effect=record)
    client = TestClient(create_app(RouteAuthorizer(mock_policy_engine)))

    response = client.post("/pets")

    assert response.status_code == 201
    assert response.headers["location"] == "/pets/1"
    assert seen == {"status": 201, "location": "/pets/1", "state": None}


# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------


def test_middleware_requires_an_authorizer(monkeypatch):
    monkeypatch.setattr(
        "route_rbac.contrib.fastapi.middleware.create_default_authorizer",
        lambda: None,
    )
    app = FastAPI()
    app.add_middleware(RouteAuthorizationMiddleware)

    @app.get("/")
    def root():
        return {}

    with pytest.raises(ConfigurationError):
        TestClient(app).get("/")
