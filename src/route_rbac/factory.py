"""
Factory functions for automatic authorizer creation.

Implements the 'if not provided create' pattern for framework integrations.
Configuration is read from Django settings (``ROUTE_RBAC``) when Django is
installed and configured, otherwise from environment variables:

- ROUTE_RBAC_POLICY_ENGINE: dotted path to the policy engine (or a factory)
- ROUTE_RBAC_USER_PROVIDER: dotted path to a user provider (or a factory)
- ROUTE_RBAC_UNAUTHORIZED_HANDLER: dotted path to an unauthorized handler
- ROUTE_RBAC_ROUTES: JSON object of route pattern -> permission config
- ROUTE_RBAC_FILTER_ERROR_RESPONSES: "true" to filter error responses
"""

import importlib
import inspect
import json
import logging
import os
from typing import Any, Optional

from route_rbac.authorizer import AuthorizerOptions, RouteAuthorizer
from route_rbac.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "ROUTE_RBAC_"


def import_object(path: str) -> Any:
    """Import ``package.module.attribute`` (or ``package.module:attribute``)."""
    module_path, sep, attr = path.replace(":", ".").rpartition(".")
    if not sep or not module_path:
        raise ConfigurationError(
            f"Invalid import path: {path!r}", details={"path": path}
        )
    try:
        module = importlib.import_module(module_path)
        return getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(
            f"Cannot import {path!r}: {e}", details={"path": path}
        ) from e


def _django_settings() -> Optional[dict[str, Any]]:
    try:
        from django.conf import settings
    except ImportError:
        return None
    if not settings.configured:
        return None
    return getattr(settings, "ROUTE_RBAC", None)


def _env_settings() -> dict[str, Any]:
    config: dict[str, Any] = {}
    for key in ("POLICY_ENGINE", "USER_PROVIDER", "UNAUTHORIZED_HANDLER"):
        value = os.environ.get(ENV_PREFIX + key)
        if value:
            config[key] = value

    routes = os.environ.get(ENV_PREFIX + "ROUTES")
    if routes:
        try:
            config["ROUTES"] = json.loads(routes)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"{ENV_PREFIX}ROUTES is not valid JSON: {e}"
            ) from e

    filter_errors = os.environ.get(ENV_PREFIX + "FILTER_ERROR_RESPONSES")
    if filter_errors:
        config["FILTER_ERROR_RESPONSES"] = filter_errors.lower() == "true"
    return config


def load_settings() -> dict[str, Any]:
    """Get the raw route authorization settings (Django first, then env)."""
    settings = _django_settings()
    if settings is not None:
        return dict(settings)
    return _env_settings()


def _resolve(value: Any, build: bool = False) -> Any:
    """Import dotted paths; call classes/factories when ``build`` is set."""
    if isinstance(value, str):
        value = import_object(value)
    if build and (inspect.isclass(value) or inspect.isfunction(value)):
        value = value()
    return value


def create_options(settings: Optional[dict[str, Any]] = None) -> AuthorizerOptions:
    settings = load_settings() if settings is None else settings
    return AuthorizerOptions(
        user_provider=_resolve(settings.get("USER_PROVIDER"), build=True),
        routes=settings.get("ROUTES") or {},
        unauthorized_handler=_resolve(settings.get("UNAUTHORIZED_HANDLER")),
        filter_error_responses=bool(settings.get("FILTER_ERROR_RESPONSES", False)),
    )


def create_default_authorizer() -> Optional[RouteAuthorizer]:
    """
    Create a RouteAuthorizer from Django settings or environment variables.

    Returns None if no policy engine is configured.
    """
    settings = load_settings()
    engine = settings.get("POLICY_ENGINE")
    if not engine:
        logger.debug("No policy engine configured for route authorization")
        return None

    return RouteAuthorizer(_resolve(engine, build=True), create_options(settings))
