"""
Order database model.

An order is one parcel travelling through a forwarder's warehouse.
"""

import uuid

from sqlalchemy import Column, Integer, String, DateTime, Enum, Boolean
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.order_enums import OrderStatus, INITIAL_STATUS


def generate_order_id() -> str:
    return uuid.uuid4().hex


class Order(Base):
    """
    Order model for the forwarding platform.

    ``status`` is a cached projection of the order's status history. It is
    only changed by the transition executor, which bumps ``version`` on every
    accepted transition so concurrent writers can detect stale reads.
    """
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True, default=generate_order_id)

    # Ownership (weak references, scoped lookups)
    forwarder_id = Column(String(64), nullable=False, index=True)
    warehouse_id = Column(String(64), nullable=False, index=True)
    customer_id = Column(String(64), nullable=False, index=True)

    # External identifiers
    tracking_number = Column(String(100), unique=True, nullable=False, index=True)
    courier = Column(String(100), nullable=True)
    courier_tracking_number = Column(String(100), nullable=True, index=True)

    # Intake details
    merchant_name = Column(String(200), nullable=True)
    description = Column(String(500), nullable=True)

    # Lifecycle
    status = Column(
        Enum(
            OrderStatus,
            name="order_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=INITIAL_STATUS,
        nullable=False,
        index=True,
    )
    version = Column(Integer, default=1, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Milestones (set once)
    received_at = Column(DateTime(timezone=True), nullable=True)
    packed_at = Column(DateTime(timezone=True), nullable=True)
    awaiting_pickup_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Order(id='{self.id}', tracking='{self.tracking_number}', warehouse_id='{self.warehouse_id}', status='{self.status.value}')>"
