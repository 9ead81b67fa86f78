"""Pydantic schemas for persisted lease layouts and the lock API. Strict validation, no I/O."""

import json
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from leaselock.domain.expiry import to_utc_datetime
from leaselock.domain.models.lock import LockOptions, LockRecord


def _metadata_must_be_json_serializable(v: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if v is None:
        return v
    try:
        json.dumps(v)
    except (TypeError, ValueError) as e:
        raise ValueError("metadata must be JSON-serializable") from e
    return v


def _epoch_seconds_floor(value: datetime) -> int:
    return math.floor(value.timestamp())


def _epoch_seconds_ceil(value: datetime) -> int:
    return math.ceil(value.timestamp())


def _epoch_millis(value: datetime) -> int:
    return round(value.timestamp() * 1000)


# ---------------------------------------------------------------------------
# Persisted layouts
# ---------------------------------------------------------------------------

class FileLockEntry(BaseModel):
    """One entry of the JSON lock file: {lockId, acquiredAt, expiresAt, metadata}, ISO-8601 timestamps."""

    model_config = ConfigDict(populate_by_name=True)

    lock_id: str = Field(..., alias="lockId", min_length=1)
    acquired_at: datetime = Field(..., alias="acquiredAt")
    expires_at: datetime = Field(..., alias="expiresAt")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("acquired_at", "expires_at")
    @classmethod
    def timestamps_are_utc(cls, v: datetime) -> datetime:
        return to_utc_datetime(v)

    @classmethod
    def from_record(cls, record: LockRecord) -> "FileLockEntry":
        return cls(
            lock_id=record.lock_id,
            acquired_at=record.acquired_at,
            expires_at=record.expires_at,
            metadata=dict(record.metadata),
        )

    def to_record(self) -> LockRecord:
        return LockRecord(
            lock_id=self.lock_id,
            acquired_at=self.acquired_at,
            expires_at=self.expires_at,
            metadata=dict(self.metadata),
        )

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "lockId": self.lock_id,
            "acquiredAt": self.acquired_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
            "metadata": self.metadata,
        }


class StoreLockItem(BaseModel):
    """
    One DynamoDB item (minus the hash key). Timestamps are integer unix seconds so the
    store can compare them natively and use expiresAt as a TTL attribute.
    """

    model_config = ConfigDict(populate_by_name=True)

    lock_id: str = Field(..., alias="lockId", min_length=1)
    acquired_at: int = Field(..., alias="acquiredAt")
    expires_at: int = Field(..., alias="expiresAt")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: LockRecord) -> "StoreLockItem":
        return cls(
            lock_id=record.lock_id,
            acquired_at=_epoch_seconds_floor(record.acquired_at),
            expires_at=_epoch_seconds_ceil(record.expires_at),
            metadata=dict(record.metadata),
        )

    def to_record(self) -> LockRecord:
        return LockRecord(
            lock_id=self.lock_id,
            acquired_at=datetime.fromtimestamp(self.acquired_at, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(self.expires_at, tz=timezone.utc),
            metadata=dict(self.metadata),
        )

    def to_attributes(self) -> Dict[str, Any]:
        return {
            "lockId": self.lock_id,
            "acquiredAt": self.acquired_at,
            "expiresAt": self.expires_at,
            "metadata": self.metadata,
        }


class RedisLockPayload(BaseModel):
    """JSON value stored under a Redis lock key. Timestamps are unix milliseconds."""

    model_config = ConfigDict(populate_by_name=True)

    lock_id: str = Field(..., alias="lockId", min_length=1)
    acquired_at: int = Field(..., alias="acquiredAt")
    expires_at: int = Field(..., alias="expiresAt")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: LockRecord) -> "RedisLockPayload":
        return cls(
            lock_id=record.lock_id,
            acquired_at=_epoch_millis(record.acquired_at),
            expires_at=_epoch_millis(record.expires_at),
            metadata=dict(record.metadata),
        )

    def to_record(self) -> LockRecord:
        return LockRecord(
            lock_id=self.lock_id,
            acquired_at=datetime.fromtimestamp(self.acquired_at / 1000, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(self.expires_at / 1000, tz=timezone.utc),
            metadata=dict(self.metadata),
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class AcquireLockRequest(BaseModel):
    """Request schema for acquiring a lease. Unset fields fall back to the manager defaults."""

    path: str = Field(..., min_length=1, description="Resource path to lock")
    timeout: Optional[int] = Field(None, ge=0, description="Lease duration in milliseconds")
    retries: Optional[int] = Field(None, ge=0)
    retry_delay: Optional[int] = Field(None, ge=0, description="Delay between attempts in milliseconds")
    metadata: Optional[Dict[str, Any]] = Field(None, description="JSON-serializable metadata")

    @field_validator("metadata")
    @classmethod
    def metadata_must_be_json_serializable(cls, v: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Ensure metadata is JSON-serializable."""
        return _metadata_must_be_json_serializable(v)

    def to_options(self) -> LockOptions:
        return LockOptions(
            timeout=self.timeout,
            retries=self.retries,
            retry_delay=self.retry_delay,
            metadata=self.metadata,
        )


class ReleaseLockRequest(BaseModel):
    path: str = Field(..., min_length=1)
    lock_id: Optional[str] = None


class ForceReleaseLockRequest(BaseModel):
    path: str = Field(..., min_length=1)


class ExtendLockRequest(BaseModel):
    path: str = Field(..., min_length=1)
    lock_id: str = Field(..., min_length=1)
    duration_ms: int = Field(..., ge=0, description="Milliseconds added to the stored expiry")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class LockResultResponse(BaseModel):
    success: bool
    lock_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    error: Optional[str] = None

    model_config = {"from_attributes": True}


class LockInfoResponse(BaseModel):
    path: str
    lock_id: str
    acquired_at: datetime
    expires_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, path: str, record: LockRecord) -> "LockInfoResponse":
        return cls(
            path=path,
            lock_id=record.lock_id,
            acquired_at=record.acquired_at,
            expires_at=record.expires_at,
            metadata=dict(record.metadata),
        )
