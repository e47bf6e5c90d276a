"""
Error Handling Module

Defines domain exceptions and error categories for the content store.
Domain exceptions are pure and have no external dependencies.
Application exceptions translate them into user-facing messages and
HTTP status codes.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Error category enumeration for structured error handling."""

    INVALID_TTL = "invalid_ttl"
    INVALID_REQUEST = "invalid_request"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    NOT_FOUND_OR_EXPIRED = "not_found_or_expired"
    STORAGE_FAILURE = "storage_failure"
    SYSTEM_ERROR = "system_error"


# User-friendly error messages with actionable guidance
ERROR_MESSAGES: Dict[ErrorCategory, Dict[str, str]] = {
    ErrorCategory.INVALID_TTL: {
        "title": "Invalid Expiration",
        "message": "The requested expiration time is not supported.",
        "action": "Choose one of 1h, 24h, 72h or 168h.",
    },
    ErrorCategory.INVALID_REQUEST: {
        "title": "Invalid Request",
        "message": "The request is missing required information or contains invalid data.",
        "action": "Please check your input and try again.",
    },
    ErrorCategory.PAYLOAD_TOO_LARGE: {
        "title": "Content Too Large",
        "message": "The uploaded content exceeds the maximum allowed size.",
        "action": "Try sharing a smaller file or a shorter paste.",
    },
    ErrorCategory.NOT_FOUND_OR_EXPIRED: {
        "title": "Not Found",
        "message": "This link does not exist or has expired.",
        "action": "Ask the sender to share the content again.",
    },
    ErrorCategory.STORAGE_FAILURE: {
        "title": "Storage Error",
        "message": "The content could not be stored or read.",
        "action": "Please try again later. If the problem persists, contact support.",
    },
    ErrorCategory.SYSTEM_ERROR: {
        "title": "System Error",
        "message": "An unexpected error occurred while processing your request.",
        "action": "Please try again later. If the problem persists, contact support.",
    },
}


# HTTP status code per category
ERROR_STATUS_CODES: Dict[ErrorCategory, int] = {
    ErrorCategory.INVALID_TTL: 400,
    ErrorCategory.INVALID_REQUEST: 400,
    ErrorCategory.PAYLOAD_TOO_LARGE: 413,
    ErrorCategory.NOT_FOUND_OR_EXPIRED: 404,
    ErrorCategory.STORAGE_FAILURE: 500,
    ErrorCategory.SYSTEM_ERROR: 500,
}


# ============================================================================
# Domain Exceptions (Pure - No External Dependencies)
# ============================================================================

class DomainError(Exception):
    """
    Base exception for all domain errors.

    Domain exceptions can optionally wrap original errors for context.
    """

    category = ErrorCategory.SYSTEM_ERROR

    def __init__(self, message: str, original_error: Exception = None):
        """
        Initialize domain error.

        Args:
            message: Error message
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.original_error = original_error


class InvalidTTLError(DomainError):
    """Raised when a ttl token is not one of the accepted durations."""

    category = ErrorCategory.INVALID_TTL


class InvalidInputError(DomainError):
    """Raised when request input fails validation (empty paste, bad limit...)."""

    category = ErrorCategory.INVALID_REQUEST


class PayloadTooLargeError(DomainError):
    """Raised when a file or paste exceeds its configured size ceiling."""

    category = ErrorCategory.PAYLOAD_TOO_LARGE


class NotFoundOrExpiredError(DomainError):
    """
    Raised when an entry cannot be served.

    Collapses "never existed", "time-expired" and "access-exhausted" into one
    case so callers cannot tell whether an ID was ever issued.
    """

    category = ErrorCategory.NOT_FOUND_OR_EXPIRED


class StorageFailureError(DomainError):
    """Raised on I/O failure in the blob store or the metadata store."""

    category = ErrorCategory.STORAGE_FAILURE


class AlreadyExistsError(DomainError):
    """Raised when an entry ID is already taken in the metadata store."""

    category = ErrorCategory.STORAGE_FAILURE


class EntryNotFoundError(DomainError):
    """Raised by metadata stores when no record exists for an ID."""

    category = ErrorCategory.NOT_FOUND_OR_EXPIRED


class EntryNotLiveError(DomainError):
    """Raised by metadata stores when an access is refused because the entry is expired or exhausted."""

    category = ErrorCategory.NOT_FOUND_OR_EXPIRED


class BlobNotFoundError(DomainError):
    """Raised by blob stores when a storage key is absent or already reclaimed."""

    category = ErrorCategory.NOT_FOUND_OR_EXPIRED


# ============================================================================
# Application Layer Exceptions
# ============================================================================

class ApplicationError(Exception):
    """
    Base application error with category and user-friendly messaging.

    Bridges domain errors with user-facing error messages and HTTP responses.
    The technical message is kept for logging and never sent to clients.
    """

    def __init__(
        self,
        category: ErrorCategory,
        technical_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize application error.

        Args:
            category: Error category
            technical_message: Technical error details for logging
            context: Additional context information
        """
        self.category = category
        self.technical_message = technical_message or ""
        self.context = context or {}

        error_info = ERROR_MESSAGES.get(
            category, ERROR_MESSAGES[ErrorCategory.SYSTEM_ERROR]
        )
        self.title = error_info["title"]
        self.message = error_info["message"]
        self.action = error_info["action"]
        self.http_status_code = ERROR_STATUS_CODES.get(category, 500)

        super().__init__(self.message)

    @classmethod
    def from_domain_error(cls, error: DomainError) -> "ApplicationError":
        """Wrap a domain error, keeping its text as the technical message."""
        return cls(error.category, str(error))

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for API response.

        Returns:
            Dictionary with error information
        """
        return {
            "error": self.category.value,
            "title": self.title,
            "message": self.message,
            "action": self.action,
        }


def create_error_response(
    category: ErrorCategory,
    technical_message: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    status_code: Optional[int] = None,
) -> tuple[Dict[str, Any], int]:
    """
    Create a structured error response for API endpoints.

    Args:
        category: Error category
        technical_message: Technical error details for logging
        context: Additional context information
        status_code: HTTP status code, defaults to the category's code

    Returns:
        Tuple of (error_dict, status_code)
    """
    error = ApplicationError(category, technical_message, context)
    return error.to_dict(), status_code or error.http_status_code
