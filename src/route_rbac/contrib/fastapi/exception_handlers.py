"""
Exception handlers for FastAPI.

Maps route authorization errors to HTTP responses.
"""

from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from route_rbac.context import ResponseState
from route_rbac.domain.errors import (
    AuthorizationError,
    ConfigurationError,
    RouteAuthError,
)


def error_response(
    exc: RouteAuthError,
    response: Optional[ResponseState] = None,
    status_code: int = status.HTTP_403_FORBIDDEN,
) -> JSONResponse:
    """Build the JSON error response, honouring a status set by the handler."""
    if response is not None and response.status_code:
        status_code = response.status_code
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": exc.message, "details": exc.details},
        headers=dict(response.headers) if response is not None else None,
    )


async def authorization_error_handler(request: Request, exc: AuthorizationError):
    """Handle AuthorizationError (403)."""
    context = getattr(request.state, "route_rbac", None)
    return error_response(exc, context.response if context else None)


async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Handle ConfigurationError (500)."""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": exc.code, "message": "Authorization is misconfigured"},
    )


def register_exception_handlers(app):
    """
    Register uniform exception handlers for the FastAPI app.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(AuthorizationError, authorization_error_handler)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
