"""Domain error taxonomy.

Every error serializes to the same public shape: name, message, action,
status_code, error_id, request_id, error_location_code and, when relevant,
the offending input key. Clients depend on this shape.
"""

import uuid
from typing import Any


class BaseError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    default_message = "An unexpected error occurred."
    default_action = "Contact support and quote the error_id."

    def __init__(
        self,
        message: str | None = None,
        action: str | None = None,
        *,
        status_code: int | None = None,
        error_location_code: str | None = None,
        key: str | None = None,
        context: dict[str, Any] | None = None,
        error_id: str | None = None,
        request_id: str | None = None,
    ):
        self.message = message or self.default_message
        self.action = action or self.default_action
        if status_code is not None:
            self.status_code = status_code
        self.error_location_code = error_location_code
        self.key = key
        self.context = context or {}
        self.error_id = error_id or str(uuid.uuid4())
        self.request_id = request_id
        super().__init__(self.message)

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_public_dict(self) -> dict[str, Any]:
        """Client-facing representation; never includes internal context."""
        public = {
            "name": self.name,
            "message": self.message,
            "action": self.action,
            "status_code": self.status_code,
            "error_id": self.error_id,
            "request_id": self.request_id,
            "error_location_code": self.error_location_code,
        }
        if self.key is not None:
            public["key"] = self.key
        return public

    def to_private_dict(self) -> dict[str, Any]:
        """Server-side log representation."""
        return {**self.to_public_dict(), "context": self.context}


class ValidationError(BaseError):
    status_code = 400
    default_message = "A validation error occurred."
    default_action = "Adjust the submitted data and try again."


class UnauthorizedError(BaseError):
    status_code = 401
    default_message = "User is not authenticated."
    default_action = "Check that you are logged in and try again."


class ForbiddenError(BaseError):
    status_code = 403
    default_message = "Access denied."
    default_action = "Check that this user has the required features."


class NotFoundError(BaseError):
    status_code = 404
    default_message = "The requested resource was not found."
    default_action = "Check that the requested resource exists."


class MethodNotAllowedError(BaseError):
    status_code = 405
    default_message = "Method not allowed for this resource."
    default_action = "Use a valid HTTP method for this resource."


class ConflictError(BaseError):
    """A concurrent write won; the request can be retried as-is."""

    status_code = 409
    default_message = "The resource was modified concurrently."
    default_action = "Retry the request."


class UnprocessableEntityError(BaseError):
    status_code = 422
    default_message = "The request cannot be applied to the resource in its current state."
    default_action = "Check the state of the resource and try again."


class InternalServerError(BaseError):
    status_code = 500


class ServiceError(BaseError):
    status_code = 503
    default_message = "A dependency of the service is unavailable."
    default_action = "Check that the service dependencies are available."
