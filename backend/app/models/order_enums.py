"""
Order lifecycle enumerations.
"""

import enum


class OrderStatus(str, enum.Enum):
    """
    Order status enumeration.

    Status flow (declaration order is the forward order):
        incoming → arrived_at_warehouse → packed → awaiting_pickup → in_transit → delivered

    Legacy values "received" and "shipped" are still accepted on input
    and normalized to ARRIVED_AT_WAREHOUSE and IN_TRANSIT.
    """
    INCOMING = "incoming"
    ARRIVED_AT_WAREHOUSE = "arrived_at_warehouse"
    PACKED = "packed"
    AWAITING_PICKUP = "awaiting_pickup"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            alias = LEGACY_STATUS_ALIASES.get(normalized)
            if alias is not None:
                return cls(alias)
            for member in cls:
                if member.value == normalized:
                    return member
        return None


LEGACY_STATUS_ALIASES = {
    "received": "arrived_at_warehouse",
    "shipped": "in_transit",
}

# Forward order of the lifecycle
STATUS_SEQUENCE = tuple(OrderStatus)

INITIAL_STATUS = OrderStatus.INCOMING

# Milestone timestamp column set the first time each status is reached
MILESTONE_FIELDS = {
    OrderStatus.ARRIVED_AT_WAREHOUSE: "received_at",
    OrderStatus.PACKED: "packed_at",
    OrderStatus.AWAITING_PICKUP: "awaiting_pickup_at",
    OrderStatus.IN_TRANSIT: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
}


class HistoryEventType(str, enum.Enum):
    """Kind of entry recorded in the order status history."""
    STATUS_CHANGE = "STATUS_CHANGE"  # Accepted transition
    SCAN = "SCAN"  # Check-in scan, status unchanged
    SCAN_NOT_FOUND = "SCAN_NOT_FOUND"  # Scan resolved to no order
    SCAN_FORBIDDEN = "SCAN_FORBIDDEN"  # Scan resolved to an order outside actor scope


class StaffActivityType(str, enum.Enum):
    """Staff activity enumeration."""
    SCAN = "scan"
    STATUS_UPDATE = "status_update"
