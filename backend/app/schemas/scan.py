"""
Scanner schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional
from backend.app.schemas.order import OrderResponse
from backend.app.schemas.status_history import HistoryEntryResponse


class ScanRequest(BaseModel):
    """Raw scan submitted by the scanner UI."""
    raw_value: str = Field(..., min_length=1, max_length=255, description="orderId|trackingNumber|courier or a bare id")
    location: str = Field("", max_length=200)
    device_info: str = Field("", max_length=500)
    status: Optional[str] = Field(None, description="Requested status, omit for a check-in scan")
    notes: Optional[str] = Field(None, max_length=2000)

    class Config:
        str_strip_whitespace = True


class ScanResponse(BaseModel):
    """Outcome of a resolved scan."""
    status_changed: bool
    order: OrderResponse
    history_entry: HistoryEntryResponse
