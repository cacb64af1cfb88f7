"""
Service-level error taxonomy.

Services raise these instead of HTTPException so they stay usable outside a
request (background sweeps, scripts). The API layer renders them through the
exception handler registered in app.main.
"""

from fastapi import status


class ServiceError(Exception):
    """Base error carrying a stable user-facing message and a detail string."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong."

    def __init__(self, message: str | None = None, details: str | None = None):
        self.message = message or self.default_message
        self.details = details or "No details provided."
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.message} ({self.details})"


class ValidationError(ServiceError):
    """Bad input shape or length. The caller can fix it and retry."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed."


class NotFoundError(ServiceError):
    """Referenced conversation, message or user does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class AccessDeniedError(ServiceError):
    """Ownership check failed (e.g. a parent reading another family's kid)."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied."


class ProviderError(ServiceError):
    """Language-model or storage backend failure. Transient and permanent are not distinguished."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream provider error."
