"""
Staff activity service.

Records what warehouse staff do (scans, status updates) for the
forwarder's performance views.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, List

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.order_enums import StaffActivityType, OrderStatus
from backend.app.models.staff_activity import StaffActivity


async def record_activity(
    db: AsyncSession,
    staff_id: str,
    forwarder_id: str,
    warehouse_id: str,
    activity_type: StaffActivityType,
    order_id: Optional[str] = None,
    old_status: Optional[OrderStatus] = None,
    new_status: Optional[OrderStatus] = None,
    scan_location: Optional[str] = None,
) -> StaffActivity:
    """Add one activity row to the current transaction (caller commits)."""
    details = {
        "old_status": old_status.value if old_status else None,
        "new_status": new_status.value if new_status else None,
        "scan_location": scan_location,
    }
    activity = StaffActivity(
        staff_id=staff_id,
        forwarder_id=forwarder_id,
        warehouse_id=warehouse_id,
        activity_type=activity_type,
        order_id=order_id,
        details={key: value for key, value in details.items() if value is not None},
    )
    db.add(activity)
    await db.flush()
    return activity


async def get_staff_activity(
    db: AsyncSession,
    forwarder_id: str,
    staff_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 100,
) -> List[StaffActivity]:
    """
    Staff activity for a forwarder, newest first.

    Defaults to the last 24 hours.
    """
    end = end or datetime.now(timezone.utc)
    start = start or end - timedelta(hours=24)

    query = select(StaffActivity).where(
        StaffActivity.forwarder_id == forwarder_id,
        StaffActivity.timestamp >= start,
        StaffActivity.timestamp <= end,
    )

    if staff_id:
        query = query.where(StaffActivity.staff_id == staff_id)

    query = query.order_by(desc(StaffActivity.timestamp), desc(StaffActivity.id)).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
