"""Lease-based distributed locks over a JSON file, DynamoDB, or Redis."""

from leaselock.application import (
    BaseLockManager,
    LockBackendError,
    LockManager,
    LockNotAcquiredError,
    LockStoreCorruptedError,
    create_lock_manager,
    hold_lock,
)
from leaselock.domain import (
    InvalidLockRecordError,
    LockDefaults,
    LockOptions,
    LockRecord,
    LockResult,
    is_expired,
)
from leaselock.infrastructure.cache.redis_lock import RedisLockManager
from leaselock.infrastructure.dynamodb.dynamodb_lock import DEFAULT_HASH_KEY, DynamoDBLockManager
from leaselock.infrastructure.file.json_file_lock import JsonFileLockManager

__all__ = [
    "BaseLockManager",
    "DEFAULT_HASH_KEY",
    "DynamoDBLockManager",
    "InvalidLockRecordError",
    "JsonFileLockManager",
    "LockBackendError",
    "LockDefaults",
    "LockManager",
    "LockNotAcquiredError",
    "LockOptions",
    "LockRecord",
    "LockResult",
    "LockStoreCorruptedError",
    "RedisLockManager",
    "create_lock_manager",
    "hold_lock",
    "is_expired",
]
