# leaselock/main.py

import logging

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from leaselock.api.middleware import CorrelationIdMiddleware, RequestAuditMiddleware
from leaselock.api.routers import health, locks, metrics
from leaselock.application.exceptions import ApplicationError, LockBackendError
from leaselock.config.logging import configure_logging
from leaselock.config.settings import get_settings
from leaselock.domain.exceptions import DomainError, DomainValidationError

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
)

# Last added is outermost: CorrelationId wraps RequestAudit so audit records carry the id.
app.add_middleware(RequestAuditMiddleware)
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(DomainValidationError)
async def domain_validation_error_handler(request: Request, exc: DomainValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message})


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(LockBackendError)
async def lock_backend_error_handler(request: Request, exc: LockBackendError):
    logger.error("lock_backend_error", extra={"route": request.url.path, "error": exc.message})
    return JSONResponse(status_code=503, content={"detail": exc.message})


async def substrate_unavailable_handler(request: Request, exc: Exception):
    """DynamoDB, Redis and filesystem faults reach here unwrapped from the managers."""
    logger.error(
        "lock_substrate_unavailable",
        extra={"route": request.url.path, "error_type": type(exc).__name__},
        exc_info=exc,
    )
    return JSONResponse(status_code=503, content={"detail": "Lock backend unavailable"})


for _exc_type in (ClientError, BotoCoreError, RedisError, OSError):
    app.add_exception_handler(_exc_type, substrate_unavailable_handler)


@app.exception_handler(ApplicationError)
async def application_error_handler(request: Request, exc: ApplicationError):
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


app.include_router(health.router)
app.include_router(locks.router, prefix="/locks")
app.include_router(metrics.router)
