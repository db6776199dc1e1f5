"""
Order Pydantic schemas.

Defines request and response models for order intake and status transitions.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.order_enums import OrderStatus


class ScanData(BaseModel):
    """Metadata captured by a physical scan."""
    barcode_value: str = Field(..., min_length=1, max_length=255)
    location: str = Field("", max_length=200, description="e.g. 'Gate A', 'Loading Bay'")
    device_info: str = Field("", max_length=500)


class TransitionContext(BaseModel):
    """Optional context recorded with a transition."""
    scan_data: Optional[ScanData] = None
    notes: Optional[str] = Field(None, max_length=2000)


class OrderCreate(BaseModel):
    """Schema for order intake."""
    warehouse_id: str = Field(..., min_length=1, max_length=64)
    customer_id: str = Field(..., min_length=1, max_length=64)
    forwarder_id: Optional[str] = Field(None, max_length=64, description="Required for system intake")
    tracking_number: Optional[str] = Field(None, min_length=1, max_length=100)
    courier: Optional[str] = Field(None, max_length=100)
    courier_tracking_number: Optional[str] = Field(None, max_length=100)
    merchant_name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)


class StatusTransitionRequest(BaseModel):
    """Schema for a status change request."""
    status: str = Field(..., description="Requested status")
    notes: Optional[str] = Field(None, max_length=2000)
    scan_data: Optional[ScanData] = None


class OrderResponse(BaseModel):
    """Schema for order response."""
    id: str
    forwarder_id: str
    warehouse_id: str
    customer_id: str
    tracking_number: str
    courier: Optional[str]
    courier_tracking_number: Optional[str]
    merchant_name: Optional[str]
    description: Optional[str]
    status: OrderStatus
    version: int
    received_at: Optional[datetime]
    packed_at: Optional[datetime]
    awaiting_pickup_at: Optional[datetime]
    shipped_at: Optional[datetime]
    delivered_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ValidStatusesResponse(BaseModel):
    """Statuses the caller may move an order to."""
    order_id: str
    current_status: OrderStatus
    valid_next_statuses: List[OrderStatus]
