"""Redis-based lease backend. SET NX PX to acquire, Lua compare-and-set to release and extend."""

import json
from datetime import timedelta
from typing import Optional, Protocol

from pydantic import ValidationError

from leaselock.application.exceptions import LockStoreCorruptedError
from leaselock.application.lock_manager import BaseLockManager, Clock, Sleeper
from leaselock.domain.expiry import is_expired
from leaselock.domain.models.lock import LockDefaults, LockRecord, ResolvedLockOptions
from leaselock.domain.schemas.lock import RedisLockPayload
from leaselock.observability import metrics as m
from leaselock.observability.metrics import MetricsCollector

LOCK_PREFIX = "lock:"


class RedisLeaseBackend(Protocol):
    """Minimal Redis operations for leases. Injected; no global state."""

    async def set_nx_px(self, key: str, value: str, ttl_ms: int) -> bool: ...
    async def get(self, key: str) -> str | None: ...
    async def delete_key(self, key: str) -> None: ...
    async def delete_if_lock_id(self, key: str, lock_id: str, now_ms: int | None = None) -> bool: ...
    async def replace_if_unchanged(
        self,
        key: str,
        lock_id: str,
        expected_expires_at_ms: int,
        now_ms: int,
        value: str,
        ttl_ms: int,
    ) -> bool: ...


class RedisLockManager(BaseLockManager):
    """
    One key per path holding the lease as JSON. The key TTL tracks expiresAt so Redis drops
    abandoned leases on its own; the stored expiresAt stays authoritative for reads.
    """

    backend_name = "redis"

    def __init__(
        self,
        backend: RedisLeaseBackend,
        key_prefix: str = LOCK_PREFIX,
        defaults: Optional[LockDefaults] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        super().__init__(defaults=defaults, metrics=metrics, clock=clock, sleep=sleep)
        self._backend = backend
        self._prefix = key_prefix

    def _key(self, path: str) -> str:
        return f"{self._prefix}{path}"

    def _now_ms(self) -> int:
        return round(self._now().timestamp() * 1000)

    def _new_record(self, opts: ResolvedLockOptions) -> LockRecord:
        return RedisLockPayload.from_record(super()._new_record(opts)).to_record()

    def _parse(self, path: str, raw: str) -> LockRecord:
        try:
            return RedisLockPayload.model_validate(json.loads(raw)).to_record()
        except (json.JSONDecodeError, ValidationError) as e:
            raise LockStoreCorruptedError(f"Lock value for '{path}' is malformed") from e

    async def _try_create(self, path: str, record: LockRecord) -> bool:
        payload = RedisLockPayload.from_record(record)
        return await self._backend.set_nx_px(
            self._key(path), payload.to_json(), payload.expires_at - self._now_ms()
        )

    async def release_lock(self, path: str, lock_id: Optional[str] = None) -> bool:
        if not lock_id:
            await self._backend.delete_key(self._key(path))
            self._record_metric(m.LOCK_RELEASE)
            self._logger.info("lock_released", extra={"path": path})
            return True
        released = await self._backend.delete_if_lock_id(self._key(path), lock_id, self._now_ms())
        if not released:
            self._record_metric(m.LOCK_RELEASE_REJECTED)
            self._logger.warning("lock_release_rejected", extra={"path": path, "lock_id": lock_id})
            return False
        self._record_metric(m.LOCK_RELEASE)
        self._logger.info("lock_released", extra={"path": path, "lock_id": lock_id})
        return True

    async def force_release_lock(self, path: str) -> bool:
        await self._backend.delete_key(self._key(path))
        self._record_metric(m.LOCK_FORCE_RELEASE)
        self._logger.warning("lock_force_released", extra={"path": path})
        return True

    async def _extend(self, path: str, lock_id: str, duration_ms: int) -> bool:
        current = await self.get_lock_info(path)
        if current is None or current.lock_id != lock_id:
            self._record_metric(m.LOCK_EXTEND_FAILURE)
            return False
        previous = RedisLockPayload.from_record(current)
        extended = RedisLockPayload.from_record(
            current.extended_by(timedelta(milliseconds=duration_ms))
        )
        now_ms = self._now_ms()
        replaced = await self._backend.replace_if_unchanged(
            self._key(path),
            lock_id,
            previous.expires_at,
            now_ms,
            extended.to_json(),
            extended.expires_at - now_ms,
        )
        if not replaced:
            self._record_metric(m.LOCK_EXTEND_FAILURE)
            self._logger.info("lock_extend_conflict", extra={"path": path, "lock_id": lock_id})
            return False
        self._record_metric(m.LOCK_EXTEND_SUCCESS)
        self._logger.info(
            "lock_extended",
            extra={"path": path, "lock_id": lock_id, "expires_at_ms": extended.expires_at},
        )
        return True

    async def get_lock_info(self, path: str) -> Optional[LockRecord]:
        raw = await self._backend.get(self._key(path))
        if raw is None:
            return None
        record = self._parse(path, raw)
        if not is_expired(record, self._now()):
            return record
        # Only remove the lease we saw; a newer one written meanwhile stays.
        if await self._backend.delete_if_lock_id(self._key(path), record.lock_id):
            self._record_metric(m.LOCK_EXPIRED_RECLAIMED)
            self._logger.info(
                "lock_expired_reclaimed",
                extra={"path": path, "lock_id": record.lock_id},
            )
        return None
