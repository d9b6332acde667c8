"""
Gateway error taxonomy.

Every failure that reaches a caller is one of these. Each carries a stable
machine-readable ``code``, the HTTP status it maps to, and a message that is
safe to show to clients. Internal detail goes to the logs, never into
``message``.
"""

from typing import Any, Dict, List, Optional

from fastapi import status


class GatewayError(Exception):
    """Base class for all errors rendered by the API exception handler."""

    code: str = "internal_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code}


# Authorization

class AuthMissing(GatewayError):
    code = "missing"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication credentials were not provided."


class AuthInvalid(GatewayError):
    code = "invalid"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Token not valid."


class AuthExpired(GatewayError):
    code = "expired"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Token already expired."


# Credentials

class AlreadyExists(GatewayError):
    code = "already_exists"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "User already exists."


class InvalidCredential(GatewayError):
    code = "invalid_credential"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "User credentials invalid."


# Resources

class NotFound(GatewayError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class UserNotFound(NotFound):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "User not found."


class Conflict(GatewayError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists."


class ValidationFailed(GatewayError):
    code = "validation_failed"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Validation error"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.errors:
            data["errors"] = self.errors
        return data


# Collaborators

class StorageFailure(GatewayError):
    code = "storage_failure"
    default_message = "Internal Server Error"


class ArtifactStoreFailure(GatewayError):
    code = "artifact_store_failure"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Failed to store the uploaded file."


class UpstreamUnavailable(GatewayError):
    code = "upstream_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Prediction service is unavailable."


class UpstreamError(GatewayError):
    code = "upstream_error"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Prediction service returned an error."

    def __init__(self, upstream_status: int, message: Optional[str] = None):
        super().__init__(message)
        self.upstream_status = upstream_status

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["upstream_status"] = self.upstream_status
        return data
