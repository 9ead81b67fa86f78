"""Domain model for leases. Pure lock semantics, no file or store layout."""

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from leaselock.domain.exceptions import InvalidLockOptionsError, InvalidMetadataError

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_RETRIES = 2
DEFAULT_RETRY_DELAY_MS = 1000

ACQUIRE_FAILED_ERROR = "Failed to acquire lock after retries"


def _validate_metadata(metadata: Dict[str, Any]) -> None:
    if not isinstance(metadata, dict):
        raise InvalidMetadataError("metadata must be a mapping")
    try:
        json.dumps(metadata)
    except (TypeError, ValueError) as e:
        raise InvalidMetadataError("metadata must be JSON-serializable") from e


@dataclass(frozen=True)
class LockRecord:
    """
    One lease on one resource path. lock_id is regenerated on every acquisition;
    only expires_at changes during the lease (via extend).
    """

    lock_id: str
    acquired_at: datetime
    expires_at: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)

    def extended_by(self, duration: timedelta) -> "LockRecord":
        """Return a copy whose expiry moved forward from the stored value, not from now."""
        return replace(self, expires_at=self.expires_at + duration)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lockId": self.lock_id,
            "acquiredAt": self.acquired_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class LockDefaults:
    """Construction-time defaults; every LockOptions field left unset falls back here."""

    timeout: int = DEFAULT_TIMEOUT_MS
    retries: int = DEFAULT_RETRIES
    retry_delay: int = DEFAULT_RETRY_DELAY_MS

    def __post_init__(self) -> None:
        for name in ("timeout", "retries", "retry_delay"):
            if getattr(self, name) < 0:
                raise InvalidLockOptionsError(f"{name} must be >= 0")

    @classmethod
    def from_settings(cls, settings: Any) -> "LockDefaults":
        return cls(
            timeout=settings.lock_timeout_ms,
            retries=settings.lock_retries,
            retry_delay=settings.lock_retry_delay_ms,
        )


@dataclass(frozen=True)
class LockOptions:
    """Per-call acquire options. timeout and retry_delay are milliseconds."""

    timeout: Optional[int] = None
    retries: Optional[int] = None
    retry_delay: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        for name in ("timeout", "retries", "retry_delay"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidLockOptionsError(f"{name} must be >= 0")
        if self.metadata is not None:
            _validate_metadata(self.metadata)

    def resolve(self, defaults: LockDefaults) -> "ResolvedLockOptions":
        return ResolvedLockOptions(
            timeout=defaults.timeout if self.timeout is None else self.timeout,
            retries=defaults.retries if self.retries is None else self.retries,
            retry_delay=defaults.retry_delay if self.retry_delay is None else self.retry_delay,
            metadata=dict(self.metadata or {}),
        )


@dataclass(frozen=True)
class ResolvedLockOptions:
    timeout: int
    retries: int
    retry_delay: int
    metadata: Dict[str, Any]


@dataclass(frozen=True)
class LockResult:
    """Outcome of acquire_lock. Contention is success=False with error set, never an exception."""

    success: bool
    lock_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    error: Optional[str] = None

    @classmethod
    def acquired(cls, record: LockRecord) -> "LockResult":
        return cls(success=True, lock_id=record.lock_id, expires_at=record.expires_at)

    @classmethod
    def failed(cls, error: str = ACQUIRE_FAILED_ERROR) -> "LockResult":
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success}
        if self.lock_id is not None:
            out["lockId"] = self.lock_id
        if self.expires_at is not None:
            out["expiresAt"] = self.expires_at.isoformat()
        if self.error is not None:
            out["error"] = self.error
        return out
