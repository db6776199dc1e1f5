"""
Staff Activity database model.

Tracks scans and status updates per staff member for performance reporting.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, Enum, Index
from backend.app.db.session import Base
from backend.app.models.order_enums import StaffActivityType
from backend.app.models.order_status_history import utcnow


class StaffActivity(Base):
    """Staff activity log entry."""
    __tablename__ = "staff_activity"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    staff_id = Column(String(64), nullable=False, index=True)
    forwarder_id = Column(String(64), nullable=False, index=True)
    warehouse_id = Column(String(64), nullable=False, index=True)

    activity_type = Column(
        Enum(StaffActivityType, name="staff_activity_type", values_callable=lambda types: [t.value for t in types]),
        nullable=False,
    )
    order_id = Column(String(255), nullable=True)

    # {old_status, new_status, scan_location}
    details = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    __table_args__ = (
        Index("ix_staff_activity_staff_timestamp", "staff_id", "timestamp"),
    )

    def __repr__(self):
        return f"<StaffActivity(staff='{self.staff_id}', type='{self.activity_type.value}', order='{self.order_id}')>"
