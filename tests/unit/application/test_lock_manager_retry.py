"""Retry loop of BaseLockManager, driven through an in-memory subclass with an injected sleeper."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from leaselock.application.lock_manager import BaseLockManager
from leaselock.domain.models.lock import ACQUIRE_FAILED_ERROR, LockDefaults, LockOptions, LockRecord
from leaselock.observability import metrics as m
from leaselock.observability.metrics import MetricsCollector

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class InMemoryLockManager(BaseLockManager):
    """Dict-backed manager; `busy_until_attempt` makes the first N creates lose the race."""

    backend_name = "memory"

    def __init__(self, busy_until_attempt: int = 0, **kwargs) -> None:
        super().__init__(**kwargs)
        self.store: Dict[str, LockRecord] = {}
        self.sleeps: List[float] = []
        self.create_calls = 0
        self._busy_until_attempt = busy_until_attempt

    async def _try_create(self, path: str, record: LockRecord) -> bool:
        self.create_calls += 1
        if self.create_calls <= self._busy_until_attempt:
            return False
        if path in self.store:
            return False
        self.store[path] = record
        return True

    async def release_lock(self, path: str, lock_id: Optional[str] = None) -> bool:
        record = self.store.get(path)
        if record is None:
            return True
        if lock_id is not None and record.lock_id != lock_id:
            return False
        del self.store[path]
        return True

    async def force_release_lock(self, path: str) -> bool:
        self.store.pop(path, None)
        return True

    async def _extend(self, path: str, lock_id: str, duration_ms: int) -> bool:
        record = self.store.get(path)
        if record is None or record.lock_id != lock_id:
            return False
        self.store[path] = record.extended_by(timedelta(milliseconds=duration_ms))
        return True

    async def get_lock_info(self, path: str) -> Optional[LockRecord]:
        record = self.store.get(path)
        if record is not None and self._now() >= record.expires_at:
            del self.store[path]
            return None
        return record


def _manager(**kwargs) -> InMemoryLockManager:
    manager = InMemoryLockManager(clock=lambda: NOW, **kwargs)

    async def _sleep(seconds: float) -> None:
        manager.sleeps.append(seconds)

    manager._sleep = _sleep
    return manager


@pytest.mark.asyncio
async def test_acquire_on_free_path_succeeds_first_try():
    manager = _manager()
    result = await manager.acquire_lock("users/1", LockOptions(timeout=5000))
    assert result.success is True
    assert result.expires_at == NOW + timedelta(milliseconds=5000)
    assert manager.store["users/1"].lock_id == result.lock_id
    assert manager.sleeps == []


@pytest.mark.asyncio
async def test_lock_ids_are_unique_per_acquisition():
    manager = _manager()
    first = await manager.acquire_lock("p")
    await manager.release_lock("p", first.lock_id)
    second = await manager.acquire_lock("p")
    assert first.lock_id != second.lock_id


@pytest.mark.asyncio
async def test_held_path_exhausts_retries_plus_one_attempts():
    manager = _manager()
    await manager.acquire_lock("p")
    result = await manager.acquire_lock("p", LockOptions(retries=3, retry_delay=250))
    assert result.success is False
    assert result.error == ACQUIRE_FAILED_ERROR
    assert result.lock_id is None
    # One sleep between each pair of attempts, none after the last.
    assert manager.sleeps == [0.25, 0.25, 0.25]


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt_without_sleep():
    manager = _manager()
    await manager.acquire_lock("p")
    result = await manager.acquire_lock("p", LockOptions(retries=0))
    assert result.success is False
    assert manager.sleeps == []


@pytest.mark.asyncio
async def test_lost_create_race_is_retried():
    manager = _manager(busy_until_attempt=2)
    result = await manager.acquire_lock("p", LockOptions(retries=2, retry_delay=10))
    assert result.success is True
    assert manager.create_calls == 3
    assert manager.sleeps == [0.01, 0.01]


@pytest.mark.asyncio
async def test_defaults_apply_when_options_omitted():
    manager = _manager(defaults=LockDefaults(timeout=100, retries=1, retry_delay=20))
    await manager.acquire_lock("p")
    result = await manager.acquire_lock("p")
    assert result.success is False
    assert manager.sleeps == [0.02]


@pytest.mark.asyncio
async def test_metadata_is_stored_with_lease():
    manager = _manager()
    await manager.acquire_lock("p", LockOptions(metadata={"owner": "job-7"}))
    info = await manager.get_lock_info("p")
    assert info.metadata == {"owner": "job-7"}


@pytest.mark.asyncio
async def test_is_locked_follows_lock_info():
    manager = _manager()
    assert await manager.is_locked("p") is False
    await manager.acquire_lock("p")
    assert await manager.is_locked("p") is True


@pytest.mark.asyncio
async def test_metrics_recorded_per_outcome():
    metrics = MetricsCollector()
    manager = _manager(metrics=metrics)
    await manager.acquire_lock("p")
    await manager.acquire_lock("p", LockOptions(retries=0))
    assert metrics.get_counter(m.LOCK_ACQUIRE_SUCCESS, category="memory") == 1
    assert metrics.get_counter(m.LOCK_ACQUIRE_FAILURE, category="memory") == 1
