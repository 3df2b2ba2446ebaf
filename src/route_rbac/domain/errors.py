"""
Domain errors for route authorization.

These errors provide a consistent interface for reporting failures
across the core pipeline and the framework adapters.
"""

from typing import Optional, Any


class RouteAuthError(Exception):
    """Base class for all route authorization errors."""

    def __init__(
        self,
        message: str,
        code: str = "ROUTE_AUTH_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ConfigurationError(RouteAuthError):
    """Raised at setup time for a missing or malformed collaborator or option."""

    def __init__(
        self,
        message: str = "Invalid route authorization configuration",
        code: str = "CONFIGURATION_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)


class AuthorizationError(RouteAuthError):
    """Raised when a permission check or an attribute validator denies a request."""

    def __init__(
        self,
        message: str = "Access denied",
        permission: Any = None,
        attribute: Any = None,
        path: Optional[str] = None,
        code: str = "PERMISSION_DENIED",
    ):
        details = {
            "permission": permission,
            "attribute": _describe(attribute),
            "path": path,
        }
        # Filter None values
        details = {k: v for k, v in details.items() if v is not None}
        super().__init__(message, code, details)
        self.permission = permission
        self.attribute = attribute
        self.path = path


def _describe(value: Any) -> Any:
    """Attribute validators may be callables; keep details JSON friendly."""
    if value is None or isinstance(value, (str, int, float, bool, list, dict)):
        return value
    return getattr(value, "__name__", repr(value))
