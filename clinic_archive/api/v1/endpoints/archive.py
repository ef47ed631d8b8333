"""
Archive lifecycle endpoints
Stateless pass-through to the lifecycle gateway for the calling actor
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
import structlog

from clinic_archive.api.deps import get_gateway
from clinic_archive.core.exceptions import error_for_code
from clinic_archive.models import Action, CallOptions, ItemType, LifecycleResult, Scope
from clinic_archive.schemas.archive import (
    BatchActionName,
    BatchRequest,
    ItemActionName,
    LifecycleResponse,
)
from clinic_archive.services.gateway import LifecycleGateway

logger = structlog.get_logger()
router = APIRouter()


def _respond(result: LifecycleResult) -> LifecycleResponse:
    if result.success:
        return LifecycleResponse.from_result(result)
    raise HTTPException(
        status_code=error_for_code(result.error).http_status,
        detail={"error": result.error.value, "message": result.message},
    )


def _options(scope_override: Optional[Scope]) -> CallOptions:
    return CallOptions(scope_override=Scope(scope_override) if scope_override else None)


@router.get("/archived", response_model=LifecycleResponse)
async def list_archived(
    item_type: Optional[ItemType] = Query(None, description="Restrict to one item type"),
    scope_override: Optional[Scope] = Query(None),
    gateway: LifecycleGateway = Depends(get_gateway),
) -> Any:
    """List archived items visible to the actor."""
    return _respond(await gateway.list_archived(item_type, _options(scope_override)))


@router.get("/hidden", response_model=LifecycleResponse)
async def list_hidden(
    item_type: Optional[ItemType] = Query(None, description="Restrict to one item type"),
    scope_override: Optional[Scope] = Query(None),
    gateway: LifecycleGateway = Depends(get_gateway),
) -> Any:
    """List hidden items visible to the actor."""
    return _respond(await gateway.list_hidden(item_type, _options(scope_override)))


@router.get("/stats", response_model=LifecycleResponse)
async def get_stats(
    item_type: Optional[ItemType] = Query(None),
    scope_override: Optional[Scope] = Query(None),
    gateway: LifecycleGateway = Depends(get_gateway),
) -> Any:
    """Archive statistics for the actor."""
    return _respond(await gateway.get_stats(item_type, _options(scope_override)))


@router.get("/permissions", response_model=LifecycleResponse)
async def get_permissions(gateway: LifecycleGateway = Depends(get_gateway)) -> Any:
    """Archive capabilities of the actor."""
    return _respond(await gateway.get_permissions())


@router.post("/{item_type}/batch/{action}", response_model=LifecycleResponse)
async def batch_action(
    item_type: ItemType,
    action: BatchActionName,
    request: BatchRequest,
    gateway: LifecycleGateway = Depends(get_gateway),
) -> Any:
    """Archive or unarchive several items in one backend call."""
    result = await gateway.execute(
        Action(action.value),
        item_type,
        request.ids,
        _options(request.scope_override),
    )
    logger.info(
        "Batch lifecycle request",
        action=action.value,
        item_type=item_type.value,
        count=len(request.ids),
        success=result.success,
    )
    return _respond(result)


@router.post("/{item_type}/{item_id}/{action}", response_model=LifecycleResponse)
async def item_action(
    item_type: ItemType,
    item_id: str,
    action: ItemActionName,
    scope_override: Optional[Scope] = Query(None),
    gateway: LifecycleGateway = Depends(get_gateway),
) -> Any:
    """Archive, unarchive or hide a single item."""
    result = await gateway.execute(Action(action.value), item_type, item_id, _options(scope_override))
    return _respond(result)
