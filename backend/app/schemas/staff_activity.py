"""
Staff activity schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Dict, Any
from backend.app.models.order_enums import StaffActivityType


class StaffActivityResponse(BaseModel):
    id: int
    staff_id: str
    warehouse_id: str
    activity_type: StaffActivityType
    order_id: Optional[str]
    details: Optional[Dict[str, Any]]
    timestamp: datetime

    class Config:
        from_attributes = True
