"""
Order Status History Database Model.

Append-only audit trail of every status change and scan attempt.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, Enum, Index, event
from backend.app.db.session import Base
from backend.app.models.enums import ActorType
from backend.app.models.order_enums import HistoryEventType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImmutableHistoryError(Exception):
    """Raised when something tries to modify or remove a history entry."""


class OrderStatusHistory(Base):
    """
    One immutable record per accepted transition or scan attempt.

    ``order_id`` carries no foreign key: scans that resolve to no order are
    logged against the raw scanned value.
    """
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    order_id = Column(String(255), nullable=False, index=True)
    event_type = Column(Enum(HistoryEventType), nullable=False, default=HistoryEventType.STATUS_CHANGE)

    # Status values are stored as plain strings to keep the trail readable
    previous_status = Column(String(32), nullable=True)
    new_status = Column(String(32), nullable=True)

    # Who performed the change
    changed_by = Column(String(64), nullable=False, index=True)
    changed_by_type = Column(
        Enum(ActorType, name="actor_type", values_callable=lambda types: [t.value for t in types]),
        nullable=False,
    )
    actor_role = Column(String(50), nullable=True)

    # Order scope at the time of the event (None for unresolved scans)
    forwarder_id = Column(String(64), nullable=True, index=True)
    warehouse_id = Column(String(64), nullable=True)

    # {barcode_value, location, device_info}
    scan_data = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)

    changed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    __table_args__ = (
        Index("ix_order_status_history_order_changed", "order_id", "changed_at"),
    )

    def __repr__(self):
        return f"<OrderStatusHistory(id={self.id}, order='{self.order_id}', {self.previous_status}->{self.new_status}, by={self.changed_by})>"


@event.listens_for(OrderStatusHistory, "before_update")
def _reject_history_update(mapper, connection, target):
    raise ImmutableHistoryError(f"History entry {target.id} is append-only and cannot be updated")


@event.listens_for(OrderStatusHistory, "before_delete")
def _reject_history_delete(mapper, connection, target):
    raise ImmutableHistoryError(f"History entry {target.id} is append-only and cannot be deleted")
