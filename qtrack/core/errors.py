"""Error taxonomy shared by the authorizer, the engines and the HTTP boundary.

Services raise these; ``qtrack.api.errors`` renders them as ``{"error": message}``
with the matching status code.
"""

from __future__ import annotations


class ServiceError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(ServiceError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class ValidationFailed(ServiceError):
    status_code = 400
    default_message = "Validation error"

    def __init__(self, message: str | None = None, *, details: list | None = None):
        super().__init__(message)
        self.details = details


class Conflict(ServiceError):
    status_code = 409
    default_message = "Conflict"


class Internal(ServiceError):
    status_code = 500
