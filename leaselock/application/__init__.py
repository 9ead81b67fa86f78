# Application layer: the lease contract, its shared orchestration, and scoped use.

from leaselock.application.exceptions import (
    ApplicationError,
    LockBackendError,
    LockNotAcquiredError,
    LockStoreCorruptedError,
)
from leaselock.application.factory import create_lock_manager
from leaselock.application.lock_context import hold_lock
from leaselock.application.lock_manager import BaseLockManager, LockManager

__all__ = [
    "ApplicationError",
    "BaseLockManager",
    "LockBackendError",
    "LockManager",
    "LockNotAcquiredError",
    "LockStoreCorruptedError",
    "create_lock_manager",
    "hold_lock",
]
