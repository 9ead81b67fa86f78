"""Domain models. Leases and acquire options."""

from leaselock.domain.models.lock import (
    ACQUIRE_FAILED_ERROR,
    LockDefaults,
    LockOptions,
    LockRecord,
    LockResult,
    ResolvedLockOptions,
)

__all__ = [
    "ACQUIRE_FAILED_ERROR",
    "LockDefaults",
    "LockOptions",
    "LockRecord",
    "LockResult",
    "ResolvedLockOptions",
]
