"""Domain-specific exceptions.

Nothing here is meant to reach end users: the schedulers catch these at their
boundary and turn them into a persisted ``failed`` status.
"""


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        """Initialize domain exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CloudSyncError(DomainException):
    """Raised when a push or pull against the sync server fails."""

    def __init__(
        self, message: str, *, status_code: int | None = None, details: dict | None = None
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class StateStoreError(DomainException):
    """Raised when the local key-value state store cannot be read or written."""
