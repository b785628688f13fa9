"""Recoverable errors raised by placement operations."""
from __future__ import annotations


class PlacementError(Exception):
    """Base error; callers render ``code`` and the message and may retry."""

    code = "PLACEMENT_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ValidationError(PlacementError):
    """Raised when input fails validation (capacity range, posting caps)."""

    code = "VALIDATION_ERROR"


class NotFoundError(PlacementError):
    """Raised when a referenced posting, application or account does not exist."""

    code = "NOT_FOUND"


class DuplicateApplicationError(PlacementError):
    """Raised when the student already applied to the posting, in any state."""

    code = "DUPLICATE_APPLICATION"


class ApplicationLimitExceededError(PlacementError):
    """Raised when the student already has the maximum number of active applications."""

    code = "APPLICATION_LIMIT_EXCEEDED"


class CapacityExceededError(PlacementError):
    """Raised when the posting has no slots left."""

    code = "CAPACITY_EXCEEDED"


class NotEligibleError(PlacementError):
    """Raised on a major or level mismatch."""

    code = "NOT_ELIGIBLE"


class UnauthorizedError(PlacementError):
    """Raised when a representative acts on a posting it does not own."""

    code = "UNAUTHORIZED"


class InvalidStateTransitionError(PlacementError):
    """Raised when the current status does not permit the operation."""

    code = "INVALID_STATE_TRANSITION"
