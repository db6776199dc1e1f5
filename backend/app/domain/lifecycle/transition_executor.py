"""
Transition Executor (Domain Logic).

Applies one status change to an order. The order update and its history
entry are committed together; a failed request writes nothing.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    OrderNotFoundError,
    InvalidStatusError,
    IllegalTransitionError,
    TransitionConflictError,
    UnauthorizedActorError,
)
from backend.app.core.guards import ScopeGuard
from backend.app.domain.lifecycle.status_policy import (
    parse_status,
    valid_next_statuses,
    is_forward_transition,
)
from backend.app.models.enums import ActorType
from backend.app.models.order import Order
from backend.app.models.order_enums import HistoryEventType, StaffActivityType, MILESTONE_FIELDS
from backend.app.models.order_status_history import OrderStatusHistory
from backend.app.schemas.actor import Actor
from backend.app.schemas.order import TransitionContext
from backend.app.services.status_history import log_transition
from backend.app.services.staff_activity import record_activity

logger = logging.getLogger("forwarding.lifecycle")
scope_guard = ScopeGuard()


async def load_active_order(db: AsyncSession, order_id: str) -> Order:
    """Fetch an active order or raise OrderNotFoundError."""
    result = await db.execute(
        select(Order).where(Order.id == order_id, Order.is_active == True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise OrderNotFoundError(order_id)
    return order


def ensure_actor_role(actor: Actor) -> None:
    """Staff must carry a role; forwarders and system act by type alone."""
    if actor.type == ActorType.STAFF and not actor.role:
        raise UnauthorizedActorError(
            "Actor role cannot be determined",
            details={"actor_id": actor.id, "actor_type": actor.type.value}
        )


def reversal_note(notes: Optional[str], actor: Actor) -> str:
    by = actor.role or actor.type.value
    suffix = f"(status reversal by {by})"
    return f"{notes} {suffix}" if notes else suffix


class TransitionExecutor:

    @staticmethod
    async def apply_transition(
        db: AsyncSession,
        order_id: str,
        requested_status: str,
        actor: Actor,
        context: Optional[TransitionContext] = None,
    ) -> Order:
        """Apply one status change and return the updated order."""
        order, _ = await TransitionExecutor.execute_transition(db, order_id, requested_status, actor, context)
        return order

    @staticmethod
    async def execute_transition(
        db: AsyncSession,
        order_id: str,
        requested_status: str,
        actor: Actor,
        context: Optional[TransitionContext] = None,
    ) -> Tuple[Order, OrderStatusHistory]:
        """
        Validate and apply one status change.

        Flow:
        1. Load the order and capture its status and version
        2. Validate the requested status and the actor
        3. Ask the status policy whether the transition is legal
        4. Compare-and-swap update on (id, version), setting milestones once
        5. Append the history entry (and staff activity) in the same transaction
        6. Commit and return the refreshed order

        Args:
            db: Database session (this method commits)
            order_id: Order to change
            requested_status: Target status (legacy aliases accepted)
            actor: Who is asking
            context: Optional scan data and notes

        Returns:
            (updated order, the history entry written for this change)

        Raises:
            OrderNotFoundError: order does not exist or is inactive
            InvalidStatusError: requested status is not in the lifecycle
            UnauthorizedActorError: role missing or order outside actor scope
            IllegalTransitionError: policy forbids the transition
            TransitionConflictError: order changed since it was read
        """
        context = context or TransitionContext()

        # 1. Load
        order = await load_active_order(db, order_id)
        order_key = order.id
        previous_status = order.status
        read_version = order.version

        # 2. Validate inputs
        target = parse_status(requested_status)
        if target is None:
            raise InvalidStatusError(requested_status)

        ensure_actor_role(actor)
        scope_guard.enforce(order, actor)

        # 3. Policy
        allowed = valid_next_statuses(previous_status, actor.role, actor.type)
        if target not in allowed:
            logger.warning(
                "Transition rejected",
                extra={
                    "order_id": order.id,
                    "current_status": previous_status.value,
                    "attempted_status": target.value,
                    "actor_id": actor.id,
                    "actor_type": actor.type.value,
                    "role": actor.role,
                }
            )
            raise IllegalTransitionError(
                current_status=previous_status.value,
                attempted_status=target.value,
                role=actor.role or actor.type.value,
                allowed=[s.value for s in allowed],
            )

        now = datetime.now(timezone.utc)
        values = {
            "status": target,
            "version": Order.version + 1,
            "updated_at": now,
        }
        milestone = MILESTONE_FIELDS.get(target)
        if milestone:
            # Set once: an existing milestone survives reversals and re-entry
            values[milestone] = func.coalesce(getattr(Order, milestone), now)

        forward = is_forward_transition(previous_status, target)
        notes = context.notes if forward else reversal_note(context.notes, actor)
        scan_data = context.scan_data.model_dump() if context.scan_data else None

        try:
            # 4. Compare-and-swap
            result = await db.execute(
                update(Order)
                .where(Order.id == order_key, Order.version == read_version)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await db.rollback()
                logger.warning(
                    "Transition lost a concurrent update",
                    extra={
                        "order_id": order_key,
                        "expected_version": read_version,
                        "attempted_status": target.value,
                        "actor_id": actor.id,
                    }
                )
                raise TransitionConflictError(order_key, previous_status.value, target.value)

            # 5. Audit trail
            entry = await log_transition(
                db=db,
                order_id=order.id,
                previous_status=previous_status,
                new_status=target,
                actor=actor,
                scan_data=scan_data,
                notes=notes,
                event_type=HistoryEventType.STATUS_CHANGE,
                forwarder_id=order.forwarder_id,
                warehouse_id=order.warehouse_id,
            )

            if actor.type == ActorType.STAFF:
                await record_activity(
                    db=db,
                    staff_id=actor.id,
                    forwarder_id=order.forwarder_id,
                    warehouse_id=order.warehouse_id,
                    activity_type=StaffActivityType.STATUS_UPDATE,
                    order_id=order.id,
                    old_status=previous_status,
                    new_status=target,
                    scan_location=context.scan_data.location if context.scan_data else None,
                )

            # 6. Commit both writes together
            await db.commit()
        except TransitionConflictError:
            raise
        except Exception:
            await db.rollback()
            raise

        await db.refresh(order)

        logger.info(
            "Order status changed",
            extra={
                "order_id": order.id,
                "previous_status": previous_status.value,
                "new_status": target.value,
                "version": order.version,
                "history_id": entry.id,
                "actor_id": actor.id,
                "actor_type": actor.type.value,
                "forward": forward,
            }
        )
        return order, entry
