"""Domain error types.

Each error carries a ``user_message`` that is safe to show in the UI and a
short ``code`` the frontend can switch on. The original exception, if any,
is only logged.
"""
from typing import Optional


class EverlivError(Exception):
    """Base class for all application errors."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None, user_message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.user_message = user_message or self.default_message


class AuthorizationError(EverlivError):
    """No authenticated user for an operation that needs one."""

    status_code = 401
    code = "unauthenticated"
    default_message = "You need to sign in to continue."


class StoreError(EverlivError):
    """Failure reported by the document store."""

    status_code = 500
    code = "store_error"
    default_message = "We could not reach your data right now."


class StoreUnavailableError(StoreError):
    """Transient store condition (offline, busy, locked). Safe to retry reads."""

    status_code = 503
    code = "store_unavailable"
    default_message = "The database is temporarily unavailable. Please try again shortly."


class PermissionDeniedError(StoreError):
    """The store refused the operation for the current caller."""

    status_code = 403
    code = "permission_denied"
    default_message = "You do not have permission to perform this action."


class DocumentNotFoundError(StoreError):
    status_code = 404
    code = "not_found"
    default_message = "The requested item was not found."


class ContentAccessError(EverlivError):
    """Permission denied while reading shared content.

    Usually means the backend security rules were never deployed, so the UI
    shows a setup hint instead of a generic failure.
    """

    status_code = 503
    code = "content_backend_misconfigured"
    default_message = (
        "Shared content could not be loaded because the backend access rules "
        "are not configured. Ask an administrator to check the database setup."
    )


class AIGatewayError(EverlivError):
    """The AI provider failed or returned output that did not validate."""

    status_code = 502
    code = "ai_unavailable"
    default_message = "The AI model may be temporarily unavailable. Please try again later."


class ProRequiredError(EverlivError):
    status_code = 402
    code = "pro_required"
    default_message = "This feature is available with an Everliv Pro subscription."


class AdminRequiredError(EverlivError):
    status_code = 403
    code = "admin_required"
    default_message = "Only administrators can manage content."


class DomainValidationError(EverlivError):
    status_code = 422
    code = "validation_error"
    default_message = "The submitted data is not valid."
