"""
Actor schema.

The lifecycle engine only sees an actor as identity, type, role and scope.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from backend.app.models.enums import ActorType


class Actor(BaseModel):
    """Authenticated caller performing a transition or scan."""
    id: str = Field(..., min_length=1, description="Staff ID, forwarder ID, or system identifier")
    type: ActorType
    role: Optional[str] = Field(None, description="Staff role, None for forwarders and system")
    forwarder_id: Optional[str] = Field(None, description="Tenant the actor belongs to")
    warehouse_ids: List[str] = Field(default_factory=list, description="Assigned warehouses (staff)")

    @property
    def tenant_id(self) -> Optional[str]:
        if self.type == ActorType.FORWARDER:
            return self.forwarder_id or self.id
        return self.forwarder_id
