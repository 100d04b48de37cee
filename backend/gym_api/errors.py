"""Service-layer exceptions.

Services raise these instead of HTTP errors so the same rules can be
reused by the REST controllers and the GraphQL resolvers. Each class
carries the HTTP status the REST layer answers with. `ServiceError`
subclasses `ValueError`, so callers that only care about "bad input"
can keep catching `ValueError`.
"""

from typing import Any, Optional


class ServiceError(ValueError):
    """A request the service layer refuses (HTTP 400 unless overridden)."""
    status_code = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ConflictError(ServiceError):
    """Uniqueness violation or a delete blocked by dependent records."""
    status_code = 400


class AuthenticationFailed(ServiceError):
    status_code = 401


class PermissionDeniedError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404
