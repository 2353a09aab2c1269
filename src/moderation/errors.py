"""
Moderation Errors

Exceptions raised by the moderation workflow. Validation errors are raised
before any request leaves the client; store and batch errors wrap a failed
request.
"""

from typing import Optional


class ModerationError(Exception):
    """Base class for moderation workflow errors."""


class ReviewValidationError(ModerationError):
    """Raised when a review or batch intent fails client-side validation."""


class EmptySelectionError(ReviewValidationError):
    """Raised when a batch operation is confirmed with nothing selected."""

    def __init__(self, message: str = "Select at least one submission"):
        super().__init__(message)


class InvalidTransitionError(ModerationError):
    """Raised when an invalid review transition is attempted."""
    def __init__(self, message: str, current_status: str, target_status: str):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(message)


class StoreRequestError(ModerationError):
    """Raised when the submission store rejects or cannot answer a request."""
    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class BatchOperationError(ModerationError):
    """Aggregate failure of a batch request, naming the attempted action."""
    def __init__(self, action: str, cause: Optional[Exception] = None):
        self.action = action
        self.cause = cause
        message = f"Failed to {action} selected submissions"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class OperationInFlightError(ModerationError):
    """Raised when a confirm is issued while a request is still pending."""

    def __init__(self, message: str = "A review request is already in progress"):
        super().__init__(message)
