"""
Dependency Injector integration for route-rbac.

Provides an optional IoC Container with a pre-configured route authorizer.
Host applications can extend this container or use it directly.

Usage:
    from route_rbac.contrib.dependency_injector import RouteAuthContainer

    class AppContainer(RouteAuthContainer):
        policy_engine = providers.Singleton(MyPolicyEngine, ...)

    container = AppContainer()
    container.config.from_dict({
        "routes": {".*": "read", "/pets": {"POST": "pets.create"}},
        "filter_error_responses": False,
    })
"""

from dependency_injector import containers, providers

from route_rbac.authorizer import AuthorizerOptions, RouteAuthorizer


class RouteAuthContainer(containers.DeclarativeContainer):
    """
    IoC Container for route authorization.

    External dependencies (can be overridden by host app):

    Required:
    - policy_engine: PolicyEnginePort implementation

    Optional:
    - user_provider: UserProviderPort (default: the policy engine's provider)
    - unauthorized_handler: UnauthorizedHandler (default: 403 handler)

    Config (under config.*):
    - routes: route pattern -> permission config
    - filter_error_responses: run attribute validators on error responses
    """

    wiring_config = containers.WiringConfiguration(
        modules=[
            "route_rbac.contrib.fastapi.middleware",
            "route_rbac.contrib.fastapi.dependencies",
            "route_rbac.contrib.django.middleware",
        ]
    )

    config = providers.Configuration()

    # Required - must be provided by app
    policy_engine = providers.Dependency()

    # Optional - None selects the authorizer defaults
    user_provider = providers.Object(None)
    unauthorized_handler = providers.Object(None)

    options = providers.Factory(
        AuthorizerOptions,
        user_provider=user_provider,
        routes=config.routes,
        unauthorized_handler=unauthorized_handler,
        filter_error_responses=config.filter_error_responses,
    )

    authorizer = providers.Singleton(
        RouteAuthorizer,
        policy_engine=policy_engine,
        options=options,
    )
