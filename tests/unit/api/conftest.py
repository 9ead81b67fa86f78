"""Fixtures for API unit tests: file-backed lock manager on tmp_path, AsyncClient."""

import pytest
from httpx import ASGITransport, AsyncClient

from leaselock.domain.models.lock import LockDefaults
from leaselock.infrastructure.file.json_file_lock import JsonFileLockManager
from leaselock.main import app
from leaselock.observability.metrics import MetricsCollector


@pytest.fixture
def lock_manager(tmp_path):
    """No retries so contended requests answer immediately."""
    return JsonFileLockManager(
        tmp_path / "locks.json",
        defaults=LockDefaults(timeout=30000, retries=0, retry_delay=0),
        metrics=MetricsCollector(),
    )


@pytest.fixture
def app_with_overrides(lock_manager):
    """App with the lock manager overridden for testing."""
    from leaselock.api import dependencies

    app.dependency_overrides[dependencies.get_lock_manager] = lambda: lock_manager
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app_with_overrides):
    """Async HTTP client for testing; uses overridden app."""
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
