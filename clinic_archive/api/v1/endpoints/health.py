"""
Health Check Endpoints
"""

from fastapi import APIRouter, Request
import structlog

from clinic_archive import __version__
from clinic_archive.core.config import settings
from clinic_archive.schemas.base import HealthCheck, HealthStatus

logger = structlog.get_logger()
router = APIRouter()


@router.get("/", response_model=HealthCheck)
async def health_check(request: Request) -> HealthCheck:
    """
    Liveness and configuration check

    Reports configuration only; the backend is not called.
    """
    checks = {
        "backend": {
            "status": "healthy" if settings.BACKEND_URL else "unhealthy",
            "url": settings.BACKEND_URL,
            "api_key_configured": bool(settings.BACKEND_ANON_KEY),
        },
        "http_client": {
            "status": "healthy" if getattr(request.app.state, "http_client", None) is not None else "degraded",
        },
    }

    overall_status = HealthStatus.HEALTHY
    if checks["backend"]["status"] != "healthy":
        overall_status = HealthStatus.UNHEALTHY
    elif checks["http_client"]["status"] != "healthy":
        overall_status = HealthStatus.DEGRADED

    return HealthCheck(
        status=overall_status,
        service="clinic-archive",
        version=__version__,
        checks=checks,
    )
