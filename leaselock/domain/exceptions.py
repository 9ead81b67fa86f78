"""Domain-specific exceptions. Pure domain layer, no infrastructure."""


class DomainError(Exception):
    """Base for all domain-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DomainValidationError(DomainError):
    """Raised when domain validation rules are violated."""


class InvalidLockRecordError(DomainValidationError, TypeError):
    """Raised when a lock record is missing or has no usable expiresAt."""


class InvalidLockOptionsError(DomainValidationError):
    """Raised when lock options are out of range (e.g. negative timeout or retries)."""


class InvalidMetadataError(DomainValidationError):
    """Raised when lock metadata is not JSON-serializable."""
