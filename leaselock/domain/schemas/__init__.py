"""Domain schemas. Persisted layouts and request/response validation."""

from leaselock.domain.schemas.lock import (
    AcquireLockRequest,
    ExtendLockRequest,
    FileLockEntry,
    ForceReleaseLockRequest,
    LockInfoResponse,
    LockResultResponse,
    RedisLockPayload,
    ReleaseLockRequest,
    StoreLockItem,
)

__all__ = [
    "AcquireLockRequest",
    "ExtendLockRequest",
    "FileLockEntry",
    "ForceReleaseLockRequest",
    "LockInfoResponse",
    "LockResultResponse",
    "RedisLockPayload",
    "ReleaseLockRequest",
    "StoreLockItem",
]
