"""Expiry policy. Single source of truth for whether a stored lease is still live."""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from leaselock.domain.exceptions import InvalidLockRecordError
from leaselock.domain.models.lock import LockRecord


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc_datetime(value: Union[datetime, str, int, float]) -> datetime:
    """
    Normalize a stored timestamp to an aware UTC datetime.
    Accepts datetimes (naive ones are taken as UTC), ISO-8601 strings and unix seconds.
    """
    if isinstance(value, bool):
        raise InvalidLockRecordError(f"Invalid timestamp: {value!r}")
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, ValueError, OSError) as e:
            raise InvalidLockRecordError(f"Invalid timestamp: {value!r}") from e
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidLockRecordError(f"Invalid timestamp: {value!r}") from e
        return to_utc_datetime(parsed)
    raise InvalidLockRecordError(f"Invalid timestamp: {value!r}")


def _expires_at_of(record: Any) -> Any:
    if isinstance(record, LockRecord):
        return record.expires_at
    if isinstance(record, Mapping):
        if "expires_at" in record:
            return record["expires_at"]
        return record.get("expiresAt")
    return getattr(record, "expires_at", None)


def is_expired(record: Any, now: Optional[datetime] = None) -> bool:
    """
    True iff now >= expires_at. Pure; does not touch the store.
    Raises InvalidLockRecordError if record is None or carries no expires_at.
    """
    if record is None:
        raise InvalidLockRecordError("Invalid lock information provided")
    expires_at = _expires_at_of(record)
    if expires_at is None:
        raise InvalidLockRecordError("Invalid lock information provided")
    current = to_utc_datetime(now) if now is not None else utcnow()
    return current >= to_utc_datetime(expires_at)
