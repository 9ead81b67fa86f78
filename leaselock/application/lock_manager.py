"""
Lock manager contract. Application code depends on the LockManager protocol; each backend
subclasses BaseLockManager and supplies only its atomic primitives.

Expected conditions (contention, absence, id mismatch) are return values. Only faults of
the substrate itself propagate as exceptions.
"""

import asyncio
import logging
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional, Protocol

from leaselock.core.context import lock_path_ctx
from leaselock.domain.exceptions import InvalidLockOptionsError
from leaselock.domain.expiry import utcnow
from leaselock.domain.models.lock import (
    LockDefaults,
    LockOptions,
    LockRecord,
    LockResult,
    ResolvedLockOptions,
)
from leaselock.observability import metrics as m
from leaselock.observability.metrics import MetricsCollector

Clock = Callable[[], datetime]
Sleeper = Callable[[float], Awaitable[None]]


class LockManager(Protocol):
    """Public lease contract, implemented identically in shape by every backend."""

    async def acquire_lock(self, path: str, options: Optional[LockOptions] = None) -> LockResult:
        """Try retries + 1 times to take a fresh lease on path. Never raises on contention."""
        ...

    async def release_lock(self, path: str, lock_id: Optional[str] = None) -> bool:
        """Delete the lease. True if absent already; False if lock_id does not match."""
        ...

    async def force_release_lock(self, path: str) -> bool:
        """Delete whatever is stored at path. Always True."""
        ...

    async def extend_lock(self, path: str, lock_id: str, duration_ms: int) -> bool:
        """Move the stored expiry forward by duration_ms via compare-and-set."""
        ...

    async def get_lock_info(self, path: str) -> Optional[LockRecord]:
        """Return the live lease or None, reclaiming an expired one."""
        ...

    async def is_locked(self, path: str) -> bool:
        ...


class BaseLockManager(ABC):
    """
    Shared orchestration: defaults resolution, the bounded retry loop, lease construction,
    logging and metrics. Holds no state about outstanding locks between calls.
    """

    backend_name = "base"

    def __init__(
        self,
        defaults: Optional[LockDefaults] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        self._defaults = defaults or LockDefaults()
        self._metrics = metrics
        self._clock = clock or utcnow
        self._sleep = sleep or asyncio.sleep
        self._logger = logging.getLogger(type(self).__module__)

    @property
    def defaults(self) -> LockDefaults:
        return self._defaults

    @property
    def metrics(self) -> Optional[MetricsCollector]:
        return self._metrics

    def _now(self) -> datetime:
        return self._clock()

    def _record_metric(self, name: str) -> None:
        if self._metrics is not None:
            self._metrics.increment(name, 1, category=self.backend_name)

    def _new_record(self, opts: ResolvedLockOptions) -> LockRecord:
        now = self._now()
        return LockRecord(
            lock_id=str(uuid.uuid4()),
            acquired_at=now,
            expires_at=now + timedelta(milliseconds=opts.timeout),
            metadata=dict(opts.metadata),
        )

    async def acquire_lock(self, path: str, options: Optional[LockOptions] = None) -> LockResult:
        opts = (options or LockOptions()).resolve(self._defaults)
        attempts = opts.retries + 1
        token = lock_path_ctx.set(path)
        started = time.monotonic()
        try:
            for attempt in range(attempts):
                self._logger.debug(
                    "lock_acquire_attempt",
                    extra={"path": path, "attempt": attempt + 1, "attempts": attempts},
                )
                if await self.get_lock_info(path) is None:
                    record = self._new_record(opts)
                    if await self._try_create(path, record):
                        self._record_metric(m.LOCK_ACQUIRE_SUCCESS)
                        if self._metrics is not None:
                            self._metrics.observe_latency(
                                m.LOCK_ACQUIRE_LATENCY_MS,
                                (time.monotonic() - started) * 1000,
                                category=self.backend_name,
                            )
                        self._logger.info(
                            "lock_acquired",
                            extra={
                                "path": path,
                                "lock_id": record.lock_id,
                                "expires_at": record.expires_at.isoformat(),
                                "backend": self.backend_name,
                            },
                        )
                        return LockResult.acquired(record)
                self._logger.debug("lock_contended", extra={"path": path, "attempt": attempt + 1})
                if attempt < attempts - 1:
                    await self._sleep(opts.retry_delay / 1000)

            self._record_metric(m.LOCK_ACQUIRE_FAILURE)
            self._logger.info(
                "lock_acquire_failed",
                extra={"path": path, "attempts": attempts, "backend": self.backend_name},
            )
            return LockResult.failed()
        finally:
            lock_path_ctx.reset(token)

    async def extend_lock(self, path: str, lock_id: str, duration_ms: int) -> bool:
        if duration_ms < 0:
            raise InvalidLockOptionsError("duration_ms must be >= 0")
        return await self._extend(path, lock_id, duration_ms)

    async def is_locked(self, path: str) -> bool:
        return await self.get_lock_info(path) is not None

    @abstractmethod
    async def _try_create(self, path: str, record: LockRecord) -> bool:
        """
        Atomically store record at path if no live lease exists there.
        False means another writer holds the path; infrastructure faults raise.
        """

    @abstractmethod
    async def release_lock(self, path: str, lock_id: Optional[str] = None) -> bool:
        ...

    @abstractmethod
    async def force_release_lock(self, path: str) -> bool:
        ...

    @abstractmethod
    async def _extend(self, path: str, lock_id: str, duration_ms: int) -> bool:
        """Compare-and-set the stored expiry forward by a non-negative duration_ms."""

    @abstractmethod
    async def get_lock_info(self, path: str) -> Optional[LockRecord]:
        ...
