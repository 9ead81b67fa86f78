# leaselock/api/routers/metrics.py

from typing import Annotated

from fastapi import APIRouter, Depends

from leaselock.api.dependencies import get_lock_manager
from leaselock.application.lock_manager import BaseLockManager

router = APIRouter()


@router.get("/metrics")
async def export_metrics(manager: Annotated[BaseLockManager, Depends(get_lock_manager)]):
    """Counters and latency summaries of the active lock manager; empty when metrics are disabled."""
    collector = manager.metrics
    if collector is None:
        return {"enabled": False, "counters": {}, "latency_ms": {}}
    return {"enabled": True, **collector.export_metrics()}
