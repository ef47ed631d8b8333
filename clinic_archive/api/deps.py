"""
FastAPI Dependencies
Actor identification, RPC transport and gateway wiring
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import structlog

from clinic_archive.clients.rpc import HttpRpcTransport, RpcTransport
from clinic_archive.models import Actor, ActorRole
from clinic_archive.services.gateway import LifecycleGateway

logger = structlog.get_logger()

# Security schemes
security = HTTPBearer(auto_error=False)


async def get_actor(
    x_actor_role: str = Header(..., description="patient, staff or admin"),
    x_actor_id: str = Header(..., description="Authenticated user id"),
    x_clinic_id: Optional[str] = Header(None, description="Clinic of staff members"),
) -> Actor:
    """
    Build the acting identity from gateway-injected headers.

    Authentication happens upstream; these headers are trusted as-is.
    """
    try:
        role = ActorRole(x_actor_role.strip().lower())
    except ValueError:
        logger.warning("Unknown actor role", role=x_actor_role)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown actor role '{x_actor_role}'",
        )
    if not x_actor_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Actor id is required")
    return Actor(role=role, user_id=x_actor_id.strip(), clinic_id=x_clinic_id)


async def get_transport(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> RpcTransport:
    """Transport forwarding the caller's bearer token, pooled on the app's client"""
    return HttpRpcTransport(
        access_token=credentials.credentials if credentials else None,
        client=getattr(request.app.state, "http_client", None),
    )


async def get_gateway(
    actor: Actor = Depends(get_actor),
    transport: RpcTransport = Depends(get_transport),
) -> LifecycleGateway:
    return LifecycleGateway(transport, actor)
