# leaselock/api/routers/health.py

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from leaselock.api.dependencies import get_lock_manager
from leaselock.application.lock_manager import LockManager
from leaselock.config.settings import get_settings

router = APIRouter()

READINESS_PROBE_PATH = "__leaselock_readiness__"


@router.get("/health")
async def health(request: Request):
    """Liveness. Does not touch the lock backend."""
    settings = get_settings()
    return {
        "status": "ok",
        "correlation_id": request.state.correlation_id,
        "lock_backend": settings.lock_backend,
        "environment": settings.environment,
        "version": settings.version,
    }


@router.get("/health/ready")
async def readiness(manager: Annotated[LockManager, Depends(get_lock_manager)]):
    # A read against a reserved path; backend faults surface as 503 via the app handlers.
    await manager.is_locked(READINESS_PROBE_PATH)
    return {"status": "ready", "backend": getattr(manager, "backend_name", "unknown")}
