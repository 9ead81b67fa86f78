"""Fixtures for backend tests: one manager per backend, sharing a frozen clock and metrics."""

import pytest

from leaselock.domain.models.lock import LockDefaults
from leaselock.infrastructure.cache.redis_lock import RedisLockManager
from leaselock.infrastructure.dynamodb.client import DynamoDBClient
from leaselock.infrastructure.dynamodb.dynamodb_lock import DynamoDBLockManager
from leaselock.infrastructure.file.json_file_lock import JsonFileLockManager
from leaselock.observability.metrics import MetricsCollector

from lease_fakes import FakeDynamoDBClient, FakeRedisLeaseBackend, FrozenClock


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def fake_dynamodb():
    return FakeDynamoDBClient()


@pytest.fixture
def fake_redis(clock):
    return FakeRedisLeaseBackend(clock)


@pytest.fixture
def file_manager(tmp_path, clock, metrics):
    return JsonFileLockManager(
        tmp_path / "locks.json",
        defaults=LockDefaults(retry_delay=100),
        metrics=metrics,
        clock=clock,
        sleep=clock.sleep,
    )


@pytest.fixture
def dynamodb_manager(fake_dynamodb, clock, metrics):
    return DynamoDBLockManager(
        DynamoDBClient("locks", client=fake_dynamodb),
        defaults=LockDefaults(retry_delay=100),
        metrics=metrics,
        clock=clock,
        sleep=clock.sleep,
    )


@pytest.fixture
def redis_manager(fake_redis, clock, metrics):
    return RedisLockManager(
        fake_redis,
        defaults=LockDefaults(retry_delay=100),
        metrics=metrics,
        clock=clock,
        sleep=clock.sleep,
    )


@pytest.fixture(params=["file", "dynamodb", "redis"])
def manager(request):
    """Every backend, for properties all of them must share."""
    return request.getfixturevalue(f"{request.param}_manager")
