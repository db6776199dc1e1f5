"""
Order status history service (audit trail).

Append-only persistence and chronological retrieval of status history
entries. Entries are flushed into the caller's transaction; the caller
commits, so an order update and its entry land together.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List, Sequence, Union

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import InvalidOrderReferenceError
from backend.app.models.enums import ActorType
from backend.app.models.order_enums import HistoryEventType, OrderStatus, INITIAL_STATUS
from backend.app.models.order_status_history import OrderStatusHistory
from backend.app.schemas.actor import Actor

logger = logging.getLogger("forwarding.audit")

MAX_ORDER_REF_LENGTH = 255


def _status_value(status: Union[OrderStatus, str, None]) -> Optional[str]:
    if status is None:
        return None
    if isinstance(status, OrderStatus):
        return status.value
    return str(status)


def validate_order_ref(order_id: Any) -> str:
    """Raise InvalidOrderReferenceError unless ``order_id`` can be stored."""
    if not isinstance(order_id, str) or not order_id.strip() or len(order_id) > MAX_ORDER_REF_LENGTH:
        raise InvalidOrderReferenceError(order_id)
    return order_id


async def log_transition(
    db: AsyncSession,
    order_id: str,
    previous_status: Union[OrderStatus, str, None],
    new_status: Union[OrderStatus, str, None],
    actor: Actor,
    scan_data: Optional[Dict[str, str]] = None,
    notes: Optional[str] = None,
    event_type: HistoryEventType = HistoryEventType.STATUS_CHANGE,
    forwarder_id: Optional[str] = None,
    warehouse_id: Optional[str] = None,
) -> OrderStatusHistory:
    """
    Append one immutable entry to the status history.

    The order does not need to exist: failed scans are logged against
    the raw scanned value.

    Args:
        db: Database session (caller commits)
        order_id: Order id, or raw scanned value for unresolved scans
        previous_status: Status before the event (None for unresolved scans)
        new_status: Status after the event
        actor: Who performed the change
        scan_data: Optional {barcode_value, location, device_info}
        notes: Free text
        event_type: Kind of entry (use HistoryEventType)
        forwarder_id: Order scope, for the forwarder feed
        warehouse_id: Order scope, for the forwarder feed

    Returns:
        Created OrderStatusHistory instance

    Raises:
        InvalidOrderReferenceError: if order_id is not a usable reference
    """
    validate_order_ref(order_id)

    entry = OrderStatusHistory(
        order_id=order_id,
        event_type=event_type,
        previous_status=_status_value(previous_status),
        new_status=_status_value(new_status),
        changed_by=actor.id,
        changed_by_type=actor.type,
        actor_role=actor.role,
        forwarder_id=forwarder_id,
        warehouse_id=warehouse_id,
        scan_data=scan_data,
        notes=notes,
    )

    db.add(entry)
    await db.flush()

    logger.debug(
        "History entry appended",
        extra={
            "history_id": entry.id,
            "order_id": order_id,
            "event_type": event_type.value,
            "previous_status": entry.previous_status,
            "new_status": entry.new_status,
            "actor_id": actor.id,
        }
    )
    return entry


async def get_history(db: AsyncSession, order_id: str) -> List[OrderStatusHistory]:
    """
    Get the complete status history of an order, oldest first.

    Returns:
        List of entries ordered by changed_at (insertion id breaks ties),
        empty if the order has no history
    """
    query = select(OrderStatusHistory).where(
        OrderStatusHistory.order_id == order_id
    ).order_by(OrderStatusHistory.changed_at, OrderStatusHistory.id)

    result = await db.execute(query)
    return list(result.scalars().all())


def verify_history_chain(
    entries: Sequence[OrderStatusHistory],
    current_status: Union[OrderStatus, str, None] = None,
) -> List[Dict[str, Any]]:
    """
    Check that an order's history forms a gapless chain.

    Each entry's previous_status must equal the prior entry's new_status.
    The first entry starts from nothing or from the initial status, and
    the last entry must end on ``current_status`` when one is given.

    Returns:
        List of chain breaks, empty when the chain is intact
    """
    breaks = []
    expected = None

    for position, entry in enumerate(entries):
        if position == 0:
            if entry.previous_status not in (None, INITIAL_STATUS.value):
                breaks.append({
                    "history_id": entry.id,
                    "expected_previous": INITIAL_STATUS.value,
                    "actual_previous": entry.previous_status,
                })
        elif entry.previous_status != expected:
            breaks.append({
                "history_id": entry.id,
                "expected_previous": expected,
                "actual_previous": entry.previous_status,
            })
        expected = entry.new_status

    current = _status_value(current_status)
    if current is not None and entries and expected != current:
        breaks.append({
            "history_id": None,
            "expected_previous": expected,
            "actual_previous": current,
        })

    return breaks


async def get_recent_status_updates(
    db: AsyncSession,
    forwarder_id: str,
    warehouse_id: Optional[str] = None,
    changed_by: Optional[str] = None,
    limit: int = 50,
) -> List[OrderStatusHistory]:
    """
    Recent history entries across a forwarder's orders, newest first.

    Only entries inside the configured feed window are returned.
    """
    since = datetime.now(timezone.utc) - timedelta(days=settings.status_feed_window_days)

    query = select(OrderStatusHistory).where(
        OrderStatusHistory.forwarder_id == forwarder_id,
        OrderStatusHistory.changed_at >= since,
    )

    if warehouse_id:
        query = query.where(OrderStatusHistory.warehouse_id == warehouse_id)

    if changed_by:
        query = query.where(OrderStatusHistory.changed_by == changed_by)

    query = query.order_by(desc(OrderStatusHistory.changed_at), desc(OrderStatusHistory.id)).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_status_update_stats(
    db: AsyncSession,
    forwarder_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Summarize history activity for a forwarder's dashboard.

    Args:
        db: Database session
        forwarder_id: Forwarder to report on
        start: Window start (defaults to the configured stats window)
        end: Window end (defaults to now)

    Returns:
        Dict with totals, status breakdown and per-actor breakdown
    """
    end = end or datetime.now(timezone.utc)
    start = start or end - timedelta(hours=settings.status_stats_window_hours)

    result = await db.execute(
        select(OrderStatusHistory).where(
            OrderStatusHistory.forwarder_id == forwarder_id,
            OrderStatusHistory.changed_at >= start,
            OrderStatusHistory.changed_at <= end,
        )
    )
    entries = result.scalars().all()

    by_type = Counter(entry.changed_by_type for entry in entries)
    status_counts = Counter(entry.new_status for entry in entries if entry.new_status)
    actor_counts = Counter(entry.changed_by for entry in entries if entry.changed_by_type == ActorType.STAFF)

    return {
        "start": start,
        "end": end,
        "total_updates": len(entries),
        "staff_updates": by_type[ActorType.STAFF],
        "forwarder_updates": by_type[ActorType.FORWARDER],
        "system_updates": by_type[ActorType.SYSTEM],
        "scans_with_data": sum(1 for entry in entries if entry.scan_data),
        "status_breakdown": [
            {"status": status, "count": count} for status, count in status_counts.most_common()
        ],
        "staff_breakdown": [
            {"staff_id": staff_id, "count": count} for staff_id, count in actor_counts.most_common()
        ],
    }
