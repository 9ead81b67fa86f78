"""Scoped lease: acquire on enter, release with the acquired lock_id on every exit path."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from leaselock.application.exceptions import LockNotAcquiredError
from leaselock.application.lock_manager import LockManager
from leaselock.domain.models.lock import LockOptions, LockResult

logger = logging.getLogger(__name__)


@asynccontextmanager
async def hold_lock(
    manager: LockManager,
    path: str,
    options: Optional[LockOptions] = None,
) -> AsyncIterator[LockResult]:
    """
    Usage:
        async with hold_lock(manager, "users/123") as lease:
            ...
    Raises LockNotAcquiredError if the lease is not obtained. The release is id-checked, so a
    lease that expired and was taken over by someone else is left alone.
    """
    result = await manager.acquire_lock(path, options)
    if not result.success:
        raise LockNotAcquiredError(path, result.error)
    try:
        yield result
    finally:
        released = await manager.release_lock(path, result.lock_id)
        if not released:
            logger.warning(
                "lock_lost_before_release",
                extra={"path": path, "lock_id": result.lock_id},
            )
