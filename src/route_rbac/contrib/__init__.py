"""
Framework integrations for route-rbac.

- ``route_rbac.contrib.fastapi``: FastAPI / Starlette middleware and dependencies
- ``route_rbac.contrib.django``: Django middleware and decorators
- ``route_rbac.contrib.dependency_injector``: IoC container
"""
