"""Application-layer exceptions. Do not reuse domain exceptions."""


class ApplicationError(Exception):
    """Base for all application-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class LockBackendError(ApplicationError):
    """Raised when the locking substrate itself is unhealthy (unreachable, unreadable, misconfigured)."""


class LockStoreCorruptedError(LockBackendError):
    """Raised when persisted lock data cannot be parsed. Never treated as 'no lock'."""


class LockNotAcquiredError(ApplicationError):
    """Raised by hold_lock when the lease could not be acquired within its retries."""

    def __init__(self, path: str, error: str | None = None) -> None:
        self.path = path
        super().__init__(f"Could not acquire lock on '{path}': {error or 'unknown error'}")
