"""
Status history schemas for the audit trail viewer and forwarder dashboard.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List, Dict, Any
from backend.app.models.enums import ActorType
from backend.app.models.order_enums import HistoryEventType


class HistoryEntryResponse(BaseModel):
    """One audit trail entry."""
    id: int
    order_id: str
    event_type: HistoryEventType
    previous_status: Optional[str]
    new_status: Optional[str]
    changed_by: str
    changed_by_type: ActorType
    actor_role: Optional[str]
    warehouse_id: Optional[str]
    scan_data: Optional[Dict[str, Any]]
    notes: Optional[str]
    changed_at: datetime

    class Config:
        from_attributes = True


class ChainBreak(BaseModel):
    history_id: Optional[int]
    expected_previous: Optional[str]
    actual_previous: Optional[str]


class OrderHistoryResponse(BaseModel):
    """Chronological audit trail of one order."""
    order_id: str
    current_status: str
    entries: List[HistoryEntryResponse]
    chain_intact: bool
    chain_breaks: List[ChainBreak] = []


class StatusCount(BaseModel):
    status: str
    count: int


class StaffCount(BaseModel):
    staff_id: str
    count: int


class StatusUpdateStatsResponse(BaseModel):
    """Aggregated history activity for a forwarder."""
    start: datetime
    end: datetime
    total_updates: int
    staff_updates: int
    forwarder_updates: int
    system_updates: int
    scans_with_data: int
    status_breakdown: List[StatusCount]
    staff_breakdown: List[StaffCount]
