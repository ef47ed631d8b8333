"""
FastAPI Main Application
Clinic Archive Lifecycle Service
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import httpx
import structlog

from clinic_archive import __version__
from clinic_archive.api.v1.router import api_router
from clinic_archive.core.config import RPC_CONFIG, settings
from clinic_archive.core.logging import setup_logging

# Setup structured logging
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting Clinic Archive Service", version=__version__, backend=settings.BACKEND_URL)

    # Pooled client shared by every request's RPC transport
    app.state.http_client = httpx.AsyncClient(timeout=httpx.Timeout(RPC_CONFIG["timeout"]))
    try:
        yield
    finally:
        logger.info("Shutting down Clinic Archive Service")
        await app.state.http_client.aclose()
        app.state.http_client = None


app = FastAPI(
    title="Clinic Archive API",
    description="Item lifecycle (archive / unarchive / hide) for the dental clinic portal",
    version=__version__,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan
)

if settings.ENVIRONMENT == "development":
    cors_origins = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    for origin in settings.CORS_ORIGINS:
        if origin not in cors_origins:
            cors_origins.append(origin)
else:
    cors_origins = settings.CORS_ORIGINS

logger.info("Configuring CORS", environment=settings.ENVIRONMENT, origins=cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "X-Actor-Role",
        "X-Actor-Id",
        "X-Clinic-Id",
    ],
    max_age=600,
)

app.include_router(api_router, prefix="/api/v1")
