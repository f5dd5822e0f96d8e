"""Storefront exception hierarchy.

Every error raised by the services carries the HTTP status and error type the
error handler middleware renders, so routes can let them propagate.
"""

from typing import Any

from fastapi import status


class StorefrontError(Exception):
    """Base exception for storefront errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str = "storefront_error",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize storefront error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code to return.
            error_type: Error category/type for client handling.
            details: Optional additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        super().__init__(message)


class ValidationError(StorefrontError):
    """Bad user input. Recovered locally, no state mutation."""

    def __init__(self, message: str = "Validation error", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_type="validation_error",
            details=details,
        )


class NotFoundError(StorefrontError):
    """Requested order, product or address is absent."""

    def __init__(self, message: str = "Resource not found", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_type="not_found",
            details=details,
        )


class AuthenticationError(StorefrontError):
    """No authenticated actor where one is required."""

    def __init__(
        self,
        message: str = "Authentication required",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_type="authentication_error",
            details=details,
        )


class AuthorizationError(StorefrontError):
    """Actor lacks the back-office capability."""

    def __init__(self, message: str = "Access denied", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_type="authorization_error",
            details=details,
        )


class CheckoutInProgress(StorefrontError):
    """A checkout for the same session is already processing."""

    def __init__(self, message: str = "Checkout is already being processed") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_type="checkout_in_progress",
        )


class RemoteUnavailable(StorefrontError):
    """Remote store failed, timed out or is not configured.

    The persistence adapter absorbs this and falls back to local storage.
    """

    def __init__(self, message: str = "Remote store unavailable") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_type="remote_unavailable",
        )


class MalformedRecord(StorefrontError):
    """A stored row could not be decoded."""

    def __init__(self, message: str = "Malformed record", record_id: str | None = None) -> None:
        self.record_id = record_id
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_type="malformed_record",
        )


class PersistenceExhausted(StorefrontError):
    """Both the remote store and local storage failed."""

    def __init__(self, message: str = "Failed to persist record: both remote and local storage failed") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_type="persistence_exhausted",
        )
