"""
Order Status Policy (Domain Logic).

Pure decision logic: given an order's current status and who is acting,
which target statuses are legal right now. No I/O, no side effects.
"""

from typing import Callable, Dict, FrozenSet, Optional, Union

from backend.app.models.enums import ActorType, StaffRole
from backend.app.models.order_enums import OrderStatus, STATUS_SEQUENCE

StatusLike = Union[OrderStatus, str]

NO_STATUSES: FrozenSet[OrderStatus] = frozenset()


def parse_status(value: StatusLike) -> Optional[OrderStatus]:
    """Return the lifecycle status for ``value`` (legacy aliases included), or None."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        return None


def status_rank(status: OrderStatus) -> int:
    return STATUS_SEQUENCE.index(status)


def is_forward_transition(current: StatusLike, target: StatusLike) -> bool:
    """True if ``target`` comes strictly later in the lifecycle than ``current``."""
    current, target = parse_status(current), parse_status(target)
    if current is None or target is None:
        return False
    return status_rank(target) > status_rank(current)


def _next_step_only(current: OrderStatus) -> FrozenSet[OrderStatus]:
    rank = status_rank(current)
    if rank + 1 >= len(STATUS_SEQUENCE):
        return NO_STATUSES
    return frozenset({STATUS_SEQUENCE[rank + 1]})


def _any_other_status(current: OrderStatus) -> FrozenSet[OrderStatus]:
    return frozenset(s for s in STATUS_SEQUENCE if s != current)


# Staff role -> rule
ROLE_RULES: Dict[StaffRole, Callable[[OrderStatus], FrozenSet[OrderStatus]]] = {
    StaffRole.WAREHOUSE_WORKER: _next_step_only,
    StaffRole.SUPERVISOR: _any_other_status,
    StaffRole.MANAGER: _any_other_status,
}

# Non-staff actor type -> rule (forwarders are admins, automation moves forward only)
ACTOR_TYPE_RULES: Dict[ActorType, Callable[[OrderStatus], FrozenSet[OrderStatus]]] = {
    ActorType.FORWARDER: _any_other_status,
    ActorType.SYSTEM: _next_step_only,
}


def valid_next_statuses(
    current_status: StatusLike,
    actor_role: Optional[Union[StaffRole, str]],
    actor_type: Optional[Union[ActorType, str]] = None,
) -> FrozenSet[OrderStatus]:
    """
    Compute the statuses an actor may move an order to.

    Rules:
        warehouse_worker: the next status in forward order only
        supervisor / manager: any status except the current one
        forwarder (any role): any status except the current one
        system: the next status in forward order only
        anything unrecognized: nothing

    Args:
        current_status: The order's current status
        actor_role: Staff role, ignored for forwarder and system actors
        actor_type: ActorType of the caller; None means staff

    Returns:
        Frozen set of allowed target statuses (empty when nothing is allowed)
    """
    current = parse_status(current_status)
    if current is None:
        return NO_STATUSES

    try:
        kind = ActorType(actor_type) if actor_type is not None else ActorType.STAFF
    except ValueError:
        return NO_STATUSES

    rule = ACTOR_TYPE_RULES.get(kind)
    if rule is None:
        try:
            rule = ROLE_RULES.get(StaffRole(actor_role))
        except ValueError:
            rule = None

    if rule is None:
        return NO_STATUSES
    return rule(current)
