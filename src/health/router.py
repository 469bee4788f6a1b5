"""Health check endpoints."""

from fastapi import APIRouter, Request

from src.config import get_settings
from src.core.responses import success_response


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check: the application process is up."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request):
    """Readiness check: the datastore must answer a ping."""
    settings = get_settings()
    datastore = getattr(request.app.state, "datastore", None)
    datastore_ok = datastore is not None and await datastore.ping()
    return success_response(
        status_code=200 if datastore_ok else 503,
        status="ready" if datastore_ok else "unavailable",
        datastore=datastore_ok,
        environment=settings.environment,
        debug=settings.debug,
    )


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
