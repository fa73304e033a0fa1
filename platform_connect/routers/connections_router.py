# platform_connect/routers/connections_router.py
from typing import Optional
import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from platform_connect.dependencies.db import get_session_dep
from platform_connect.infrastructure.connections_repo import PlatformConnectionsRepository
from platform_connect.models.platform_connection import PlatformConnection
from platform_connect.schemas.connection_schema import ConnectionList, ConnectionRead, ConnectionStatusUpdate

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/platform-connections", tags=["platform-connections"])


def _sanitize(cp: PlatformConnection) -> ConnectionRead:
    return ConnectionRead(
        id=cp.id,
        platform=cp.platform,
        platform_username=cp.platform_username,
        platform_workspace_name=cp.platform_workspace_name,
        connected_at=cp.connected_at,
        last_used_at=cp.last_used_at,
        is_active=cp.is_active,
        has_valid_token=bool(cp.access_token),
        token_expires=cp.expires_at,
        scope=cp.scope,
    )


@router.get("", response_model=ConnectionList)
async def list_connections(platform: Optional[str] = None, session: AsyncSession = Depends(get_session_dep)):
    repo = PlatformConnectionsRepository(session)
    try:
        rows = await repo.list_connections(platform=platform)
    except SQLAlchemyError as e:
        logger.exception("connections_list_failed", platform=platform, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to fetch platform connections")
    return ConnectionList(connections=[_sanitize(cp) for cp in rows], total=len(rows))


@router.delete("")
async def disconnect(id: Optional[uuid.UUID] = None, platform: Optional[str] = None, session: AsyncSession = Depends(get_session_dep)):
    if not id and not platform:
        raise HTTPException(status_code=400, detail="Either connection id or platform is required")

    repo = PlatformConnectionsRepository(session)
    try:
        if id:
            cp = await repo.get_by_id(id)
            if not cp:
                raise HTTPException(status_code=404, detail="Connection not found")
            await repo.delete(cp)
            logger.info("connection_removed", connection_id=str(id), platform=cp.platform)
            return {"success": True, "message": "Connection removed"}

        removed = await repo.delete_by_platform(platform)
        logger.info("platform_connections_removed", platform=platform, removed=removed)
        return {"success": True, "message": f"All {platform} connections removed", "removed": removed}
    except SQLAlchemyError as e:
        logger.exception("connection_delete_failed", connection_id=str(id) if id else None, platform=platform, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to disconnect platform")


@router.put("")
async def update_status(payload: ConnectionStatusUpdate, session: AsyncSession = Depends(get_session_dep)):
    repo = PlatformConnectionsRepository(session)
    cp = await repo.get_by_id(payload.connection_id)
    if not cp:
        raise HTTPException(status_code=404, detail="Connection not found")
    try:
        await repo.set_active(cp, payload.is_active)
    except SQLAlchemyError as e:
        logger.exception("connection_update_failed", connection_id=str(payload.connection_id), error=str(e))
        raise HTTPException(status_code=500, detail="Failed to update platform connection")
    state = "activated" if payload.is_active else "deactivated"
    logger.info("connection_status_changed", connection_id=str(payload.connection_id), is_active=payload.is_active)
    return {"success": True, "message": f"Connection {state}"}
