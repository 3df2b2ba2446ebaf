from typing import Optional
import json
import logging
from django.http import JsonResponse, HttpRequest, HttpResponse
from dependency_injector.wiring import inject, Provide

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

logger = logging.getLogger(__name__)

_SKIPPED_HEADERS = ("content-length", "content-type")


def error_response(
    exc: AuthorizationError, response: Optional[ResponseState] = None
) -> JsonResponse:
    """Build the JSON error response, honouring a status set by the handler."""
    status = response.status_code if response and response.status_code else 403
    result = JsonResponse(
        {"error": exc.code, "message": exc.message, "details": exc.details},
        status=status,
    )
    if response is not None:
        for key, value in response.headers.items():
            result[key] = value
    return result


def _is_json(response: HttpResponse) -> bool:
    content_type = response.get("Content-Type", "")
    return content_type.split(";")[0].strip().lower() == "application/json"


def apply_response_state(
    response: HttpResponse, state: ResponseState
) -> HttpResponse:
    """Apply the status and headers set by an unauthorized handler."""
    if state.status_code:
        response.status_code = state.status_code
    for key, value in state.headers.items():
        response[key] = value
    return response


class RouteAuthorizationMiddleware:
    """
    Route authorization middleware for Django.

    Add ``"route_rbac.contrib.django.RouteAuthorizationMiddleware"`` to
    MIDDLEWARE; the authorizer is injected from RouteAuthContainer or built
    from ``settings.ROUTE_RBAC``.
    """

    async_capable = True
    sync_capable = False

    @inject
    def __init__(
        self,
        get_response,
        authorizer: Optional[RouteAuthorizer] = Provide[RouteAuthContainer.authorizer],
    ):
        self.get_response = get_response
        if authorizer is None or isinstance(authorizer, Provide):
            authorizer = create_default_authorizer()
        if authorizer is None:
            raise ConfigurationError(
                "RouteAuthorizer is required for RouteAuthorizationMiddleware"
            )
        self.authorizer = authorizer

    async def __call__(self, request: HttpRequest) -> HttpResponse:
        context = AuthorizationContext(
            request=request, method=request.method, path=request.path
        )
        request.route_rbac = context
        request.route_rbac_authorizer = self.authorizer
        token = set_authorization_context(context)
        try:
            try:
                await self.authorizer.authorize_request(request, context)
            except AuthorizationError as e:
                return error_response(e, context.response)

            response = await self.get_response(request)
            context.host_response = response
            return await self._filter(request, context, response)
        finally:
            reset_authorization_context(token)

    def _should_filter(self, response: HttpResponse) -> bool:
        if getattr(response, "streaming", False) or not _is_json(response):
            return False
        return response.status_code < 400 or bool(
            self.authorizer.options.filter_error_responses
        )

    async def _filter(
        self,
        request: HttpRequest,
        context: AuthorizationContext,
        response: HttpResponse,
    ) -> HttpResponse:
        if not self._should_filter(response) or not response.content:
            return apply_response_state(response, context.response)

        try:
            payload = await self.authorizer.filter_response(
                request, context, json.loads(response.content)
            )
        except AuthorizationError as e:
            return error_response(e, context.response)

        filtered = JsonResponse(payload, status=response.status_code, safe=False)
        for key, value in response.items():
            if key.lower() not in _SKIPPED_HEADERS:
                filtered[key] = value
        filtered.cookies = response.cookies
        return apply_response_state(filtered, context.response)
