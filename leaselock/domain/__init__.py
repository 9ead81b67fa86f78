"""Domain layer: lease models, expiry policy, schemas, exceptions. Pure lock semantics only."""

from leaselock.domain.exceptions import (
    DomainError,
    DomainValidationError,
    InvalidLockOptionsError,
    InvalidLockRecordError,
    InvalidMetadataError,
)
from leaselock.domain.expiry import is_expired
from leaselock.domain.models import LockDefaults, LockOptions, LockRecord, LockResult

__all__ = [
    "DomainError",
    "DomainValidationError",
    "InvalidLockOptionsError",
    "InvalidLockRecordError",
    "InvalidMetadataError",
    "LockDefaults",
    "LockOptions",
    "LockRecord",
    "LockResult",
    "is_expired",
]
