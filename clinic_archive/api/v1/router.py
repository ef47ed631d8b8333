"""
API v1 Router
Main router for all API v1 endpoints
"""

from fastapi import APIRouter
from clinic_archive.api.v1.endpoints import archive, health

api_router = APIRouter()

# Archive lifecycle endpoints
api_router.include_router(
    archive.router,
    prefix="/archive",
    tags=["archive"]
)

# Health and monitoring endpoints
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"]
)
