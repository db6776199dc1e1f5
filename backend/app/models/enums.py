"""
Actor enumerations.

Defines who can act on an order and under what authority.
"""

import enum


class ActorType(str, enum.Enum):
    """
    Actor type enumeration.

    Types:
        STAFF: Warehouse employee, scoped to assigned warehouses
        FORWARDER: Logistics business tenant, acts as order admin
        SYSTEM: Automation and inbound webhooks
    """
    STAFF = "staff"
    FORWARDER = "forwarder"
    SYSTEM = "system"


class StaffRole(str, enum.Enum):
    """
    Staff role enumeration.

    Roles:
        WAREHOUSE_WORKER: Moves orders forward one step at a time
        SUPERVISOR: Can also correct mistakes with backward transitions
        MANAGER: Same transition rights as a supervisor
    """
    WAREHOUSE_WORKER = "warehouse_worker"
    SUPERVISOR = "supervisor"
    MANAGER = "manager"
