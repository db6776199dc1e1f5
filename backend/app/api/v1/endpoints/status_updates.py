"""
Forwarder Dashboard API Endpoints.

Recent status updates, status update statistics and staff activity
across the forwarder's warehouses.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.guards import require_actor_type
from backend.app.models.enums import ActorType
from backend.app.schemas.actor import Actor
from backend.app.schemas.staff_activity import StaffActivityResponse
from backend.app.schemas.status_history import HistoryEntryResponse, StatusUpdateStatsResponse
from backend.app.services.staff_activity import get_staff_activity
from backend.app.services.status_history import get_recent_status_updates, get_status_update_stats

router = APIRouter(prefix="/forwarder", tags=["Forwarder - Status Updates"])


@router.get("/status-updates", response_model=List[HistoryEntryResponse])
async def list_recent_status_updates(
    warehouse_id: Optional[str] = Query(None, description="Only this warehouse"),
    staff_id: Optional[str] = Query(None, description="Only changes by this actor"),
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(require_actor_type([ActorType.FORWARDER])),
    db: AsyncSession = Depends(get_db)
):
    """Recent status updates across your orders, newest first."""
    return await get_recent_status_updates(
        db,
        forwarder_id=actor.tenant_id,
        warehouse_id=warehouse_id,
        changed_by=staff_id,
        limit=limit,
    )


@router.get("/status-updates/stats", response_model=StatusUpdateStatsResponse)
async def status_update_stats(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    actor: Actor = Depends(require_actor_type([ActorType.FORWARDER])),
    db: AsyncSession = Depends(get_db)
):
    """Status update statistics (defaults to the last 24 hours)."""
    stats = await get_status_update_stats(db, actor.tenant_id, start=start, end=end)
    return StatusUpdateStatsResponse(**stats)


@router.get("/staff-activity", response_model=List[StaffActivityResponse])
async def list_staff_activity(
    staff_id: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    actor: Actor = Depends(require_actor_type([ActorType.FORWARDER])),
    db: AsyncSession = Depends(get_db)
):
    """Staff scans and status updates (defaults to the last 24 hours)."""
    return await get_staff_activity(
        db,
        forwarder_id=actor.tenant_id,
        staff_id=staff_id,
        start=start,
        end=end,
        limit=limit,
    )
