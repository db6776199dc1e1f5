"""
Security guards for actor-type and scope-based access control.

Provides dependencies for protecting endpoints and scope checks for orders.
"""

from typing import List
from fastapi import Depends
from backend.app.core.dependencies import get_current_actor
from backend.app.core.exceptions import UnauthorizedActorError
from backend.app.models.enums import ActorType
from backend.app.schemas.actor import Actor


def require_actor_type(allowed_types: List[ActorType]):
    """
    Dependency factory for actor-type access control.

    Usage:
        @router.post("/orders")
        async def create(actor: Actor = Depends(require_actor_type([ActorType.FORWARDER]))):
            ...

    Args:
        allowed_types: ActorType values allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates the actor type

    Raises:
        UnauthorizedActorError (403) if the actor type is not allowed
    """
    async def actor_type_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.type not in allowed_types:
            raise UnauthorizedActorError(
                f"Access denied. Required actor type: {', '.join([t.value for t in allowed_types])}"
            )
        return actor

    return actor_type_checker


def in_scope(order, actor: Actor) -> bool:
    """
    Check whether an order falls inside the actor's scope.

    For System: always allowed
    For Forwarders: the order must belong to the forwarder
    For Staff: the order's warehouse must be assigned to them
    """
    if actor.type == ActorType.SYSTEM:
        return True

    if actor.type == ActorType.FORWARDER:
        return order.forwarder_id == actor.tenant_id

    if actor.forwarder_id and order.forwarder_id != actor.forwarder_id:
        return False
    return order.warehouse_id in actor.warehouse_ids


class ScopeGuard:
    """
    Class-based scope guard for validating multi-tenant access to orders.

    Usage:
        scope_guard = ScopeGuard()
        scope_guard.enforce(order, actor)
    """

    def enforce(self, order, actor: Actor, resource_name: str = "order"):
        """
        Enforce scope validation, raise 403 if access denied.

        Raises:
            UnauthorizedActorError if the order is outside the actor's scope
        """
        if not in_scope(order, actor):
            raise UnauthorizedActorError(
                f"Access denied. You do not have permission to access this {resource_name}.",
                details={
                    "order_id": order.id,
                    "actor_id": actor.id,
                    "actor_type": actor.type.value,
                }
            )
