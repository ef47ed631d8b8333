"""
Archive Schemas
Request/response models for the lifecycle endpoints
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import Field, field_validator

from clinic_archive.models import LifecycleResult, Scope
from clinic_archive.schemas.base import BaseSchema


class ItemActionName(str, Enum):
    """Actions addressable on a single item"""
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"
    HIDE = "hide"


class BatchActionName(str, Enum):
    """Actions that accept several ids in one call"""
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"


# ==================== Request Schemas ====================


class BatchRequest(BaseSchema):
    """Schema for a multi-item archive/unarchive request"""
    ids: List[str] = Field(..., min_length=1, max_length=1000, description="Item IDs to act on")
    scope_override: Optional[Scope] = Field(None, description="Narrower scope to act under")

    @field_validator("ids")
    @classmethod
    def validate_ids(cls, v: List[str]) -> List[str]:
        cleaned = [i.strip() for i in v if i and i.strip()]
        if not cleaned:
            raise ValueError("At least one non-empty item ID is required")
        return list(dict.fromkeys(cleaned))


# ==================== Response Schemas ====================


class LifecycleResponse(BaseSchema):
    """Successful lifecycle call"""
    success: bool = Field(True, description="Always true; failures are returned as HTTP errors")
    message: Optional[str] = Field(None, description="Human readable outcome")
    data: Any = Field(None, description="Unwrapped backend payload")

    @classmethod
    def from_result(cls, result: LifecycleResult) -> "LifecycleResponse":
        return cls(success=result.success, message=result.message, data=result.data)
