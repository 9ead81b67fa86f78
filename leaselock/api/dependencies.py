"""FastAPI dependency injection: the process-wide lock manager."""

from leaselock.application.factory import create_lock_manager
from leaselock.application.lock_manager import LockManager

_lock_manager: LockManager | None = None


def get_lock_manager() -> LockManager:
    """Return singleton lock manager built from settings."""
    global _lock_manager
    if _lock_manager is None:
        _lock_manager = create_lock_manager()
    return _lock_manager
