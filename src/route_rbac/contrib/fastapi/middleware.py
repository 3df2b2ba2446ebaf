"""
Route authorization middleware for FastAPI / Starlette.

Runs the pre-request guard before the application and the post-response
attribute filter on JSON responses the application produced.
"""

import json
import logging
from typing import Optional

from dependency_injector.wiring import inject, Provide
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from route_rbac.authorizer import RouteAuthorizer
from route_rbac.context import (
    AuthorizationContext,
    ResponseState,
    reset_authorization_context,
    set_authorization_context,
)
from route_rbac.contrib.dependency_injector import RouteAuthContainer
from route_rbac.domain.errors import AuthorizationError, ConfigurationError
from route_rbac.factory import create_default_authorizer
from .exception_handlers import error_response, register_exception_handlers

logger = logging.getLogger(__name__)

_SKIPPED_HEADERS = (b"content-length", b"content-type")


def _is_json(response: Response) -> bool:
    content_type = response.headers.get("content-type", "")
    return content_type.split(";")[0].strip().lower() == "application/json"


async def read_body(response: Response) -> bytes:
    """Consume a streamed response body."""
    chunks = []
    async for chunk in response.body_iterator:
        if isinstance(chunk, str):
            chunk = chunk.encode(response.charset)
        chunks.append(bytes(chunk))
    return b"".join(chunks)


def apply_response_state(response: Response, state: ResponseState) -> Response:
    """Apply the status and headers set by an unauthorized handler."""
    if state.status_code:
        response.status_code = state.status_code
    for key, value in state.headers.items():
        response.headers[key] = value
    return response


class RouteAuthorizationMiddleware(BaseHTTPMiddleware):
    @inject
    def __init__(
        self,
        app,
        authorizer: Optional[RouteAuthorizer] = Provide[RouteAuthContainer.authorizer],
    ):
        super().__init__(app)
        if authorizer is None or isinstance(authorizer, Provide):
            authorizer = create_default_authorizer()
        if authorizer is None:
            raise ConfigurationError(
                "RouteAuthorizer is required for RouteAuthorizationMiddleware"
            )
        self.authorizer = authorizer

    async def dispatch(self, request: Request, call_next) -> Response:
        context = AuthorizationContext(
            request=request, method=request.method, path=request.url.path
        )
        request.state.route_rbac = context
        token = set_authorization_context(context)
        try:
            try:
                await self.authorizer.authorize_request(request, context)
            except AuthorizationError as e:
                return error_response(e, context.response)

            response = await call_next(request)
            context.host_response = response
            return await self._filter(request, context, response)
        finally:
            reset_authorization_context(token)

    def _should_filter(self, response: Response) -> bool:
        if not _is_json(response):
            return False
        return response.status_code < 400 or bool(
            self.authorizer.options.filter_error_responses
        )

    async def _filter(
        self, request: Request, context: AuthorizationContext, response: Response
    ) -> Response:
        if not self._should_filter(response):
            return apply_response_state(response, context.response)

        body = await read_body(response)
        if not body:
            return apply_response_state(
                self._rebuild(response, body), context.response
            )

        try:
            payload = await self.authorizer.filter_response(
                request, context, json.loads(body)
            )
        except AuthorizationError as e:
            return error_response(e, context.response)

        filtered = JSONResponse(
            payload,
            status_code=response.status_code,
            background=getattr(response, "background", None),
        )
        filtered.raw_headers.extend(
            (key, value)
            for key, value in response.raw_headers
            if key.lower() not in _SKIPPED_HEADERS
        )
        return apply_response_state(filtered, context.response)

    def _rebuild(self, response: Response, body: bytes) -> Response:
        rebuilt = Response(
            content=body,
            status_code=response.status_code,
            background=getattr(response, "background", None),
        )
        rebuilt.raw_headers = list(response.raw_headers)
        return rebuilt


def register_app(app, authorizer: RouteAuthorizer):
    """
    Register a FastAPI app on a route authorizer.

    Adds the route authorization middleware and the exception handlers.
    Must be called before routes whose JSON responses need attribute
    filtering are served.

    Example:
    ```python
    app = register_app(FastAPI(), authorizer)
    ```
    """
    app.add_middleware(RouteAuthorizationMiddleware, authorizer=authorizer)
    register_exception_handlers(app)
    return app
