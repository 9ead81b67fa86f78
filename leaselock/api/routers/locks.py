"""Locks API router: acquire, release, force-release, extend, info, status."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from leaselock.api.dependencies import get_lock_manager
from leaselock.application.lock_manager import LockManager
from leaselock.domain.schemas.lock import (
    AcquireLockRequest,
    ExtendLockRequest,
    ForceReleaseLockRequest,
    LockInfoResponse,
    LockResultResponse,
    ReleaseLockRequest,
)

router = APIRouter()


@router.post("/acquire", response_model=LockResultResponse)
async def acquire_lock(
    body: AcquireLockRequest,
    manager: Annotated[LockManager, Depends(get_lock_manager)],
):
    """Acquire a lease. 409 with the failure result when every attempt found the path held."""
    result = await manager.acquire_lock(body.path, body.to_options())
    response = LockResultResponse.model_validate(result)
    if not result.success:
        return JSONResponse(status_code=409, content=response.model_dump(mode="json"))
    return response


@router.post("/release")
async def release_lock(
    body: ReleaseLockRequest,
    manager: Annotated[LockManager, Depends(get_lock_manager)],
):
    """Release a lease. Releasing an absent lease succeeds; a lock_id mismatch is 409."""
    released = await manager.release_lock(body.path, body.lock_id)
    if not released:
        return JSONResponse(
            status_code=409,
            content={"released": False, "detail": "Lock is held under a different lock_id"},
        )
    return {"released": True}


@router.post("/force-release")
async def force_release_lock(
    body: ForceReleaseLockRequest,
    manager: Annotated[LockManager, Depends(get_lock_manager)],
):
    """Remove any lease at path regardless of owner."""
    return {"released": await manager.force_release_lock(body.path)}


@router.post("/extend")
async def extend_lock(
    body: ExtendLockRequest,
    manager: Annotated[LockManager, Depends(get_lock_manager)],
):
    extended = await manager.extend_lock(body.path, body.lock_id, body.duration_ms)
    if not extended:
        return JSONResponse(
            status_code=409,
            content={"extended": False, "detail": "Lock is absent, expired, or held under a different lock_id"},
        )
    return {"extended": True}


@router.get("/info", response_model=LockInfoResponse)
async def get_lock_info(
    path: Annotated[str, Query(min_length=1)],
    manager: Annotated[LockManager, Depends(get_lock_manager)],
):
    record = await manager.get_lock_info(path)
    if record is None:
        return JSONResponse(status_code=404, content={"detail": "Lock not found"})
    return LockInfoResponse.from_record(path, record)


@router.get("/status")
async def lock_status(
    path: Annotated[str, Query(min_length=1)],
    manager: Annotated[LockManager, Depends(get_lock_manager)],
):
    return {"path": path, "locked": await manager.is_locked(path)}
