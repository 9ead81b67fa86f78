"""Build the configured LockManager from settings."""

from typing import Optional

from leaselock.application.lock_manager import BaseLockManager
from leaselock.config.settings import LockSettings, get_settings
from leaselock.domain.models.lock import LockDefaults
from leaselock.observability.metrics import MetricsCollector


def create_lock_manager(
    settings: Optional[LockSettings] = None,
    metrics: Optional[MetricsCollector] = None,
) -> BaseLockManager:
    """Return the backend named by settings.lock_backend, seeded with the configured defaults."""
    settings = settings or get_settings()
    defaults = LockDefaults.from_settings(settings)
    if metrics is None and settings.enable_metrics:
        metrics = MetricsCollector()

    if settings.lock_backend == "file":
        from leaselock.infrastructure.file.json_file_lock import JsonFileLockManager

        return JsonFileLockManager(settings.lock_file_path, defaults=defaults, metrics=metrics)

    if settings.lock_backend == "dynamodb":
        from leaselock.infrastructure.dynamodb.client import DynamoDBClient
        from leaselock.infrastructure.dynamodb.dynamodb_lock import DynamoDBLockManager

        return DynamoDBLockManager(
            DynamoDBClient.from_settings(settings),
            hash_key=settings.dynamodb_hash_key,
            defaults=defaults,
            metrics=metrics,
        )

    if settings.lock_backend == "redis":
        from leaselock.infrastructure.cache.redis_client import RedisClient
        from leaselock.infrastructure.cache.redis_lock import RedisLockManager

        return RedisLockManager(
            RedisClient(settings.redis_url),
            key_prefix=settings.redis_key_prefix,
            defaults=defaults,
            metrics=metrics,
        )

    raise ValueError(f"Unknown lock backend: {settings.lock_backend!r}")
