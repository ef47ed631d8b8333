"""
Application Configuration
Environment variables and settings management
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    ENVIRONMENT: str = Field(default="development", description="Application environment")
    DEBUG: bool = Field(default=False, description="Debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # Managed backend (PostgREST-style RPC endpoint)
    BACKEND_URL: str = Field(default="http://localhost:54321", description="Base URL of the managed backend")
    BACKEND_ANON_KEY: str = Field(default="", description="Public API key sent with every RPC call")
    RPC_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0, description="Transport timeout for remote calls")

    # Remote procedures
    PATIENT_ARCHIVE_FUNCTION: str = Field(
        default="manage_patient_archives",
        description="Archive procedure used by patients (personal scope only)"
    )
    STAFF_ARCHIVE_FUNCTION: str = Field(
        default="manage_user_archives",
        description="Archive procedure used by staff and admins (accepts scope override)"
    )
    RECORDS_FUNCTION: str = Field(
        default="get_appointments_by_role",
        description="Record-fetch procedure returning all appointments visible to the actor"
    )
    FEEDBACK_RECORDS_FUNCTION: str = Field(
        default="get_patient_feedback_history",
        description="Record-fetch procedure for feedback entries"
    )
    NOTIFICATION_RECORDS_FUNCTION: str = Field(
        default="get_user_notifications",
        description="Record-fetch procedure for notifications"
    )

    # Pagination
    DEFAULT_PAGE_LIMIT: int = Field(default=50, ge=1, le=1000, description="Records per page for store refreshes")

    # Security
    CORS_ORIGINS: List[str] = Field(default=[], description="CORS allowed origins")

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v if isinstance(v, list) else []

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value"""
        allowed = ["development", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("BACKEND_URL")
    @classmethod
    def strip_backend_url(cls, v):
        return v.rstrip("/")

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }


# Create settings instance
settings = Settings()

# Derived settings
RPC_CONFIG = {
    "base_url": f"{settings.BACKEND_URL}/rest/v1/rpc",
    "api_key": settings.BACKEND_ANON_KEY,
    "timeout": settings.RPC_TIMEOUT_SECONDS,
}
