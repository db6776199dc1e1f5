"""
Order Lifecycle API Endpoints.

Order intake, status transitions and the audit trail viewer, with scope
enforcement for staff and forwarders.
"""

from fastapi import APIRouter, Depends, status, Path
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_actor
from backend.app.core.guards import require_actor_type, ScopeGuard
from backend.app.domain.lifecycle.status_policy import valid_next_statuses, status_rank
from backend.app.domain.lifecycle.transition_executor import TransitionExecutor, load_active_order
from backend.app.models.enums import ActorType
from backend.app.schemas.actor import Actor
from backend.app.schemas.order import (
    OrderCreate, OrderResponse, StatusTransitionRequest, TransitionContext, ValidStatusesResponse
)
from backend.app.schemas.status_history import HistoryEntryResponse, OrderHistoryResponse
from backend.app.services.order_intake import create_order
from backend.app.services.status_history import get_history, verify_history_chain

router = APIRouter(prefix="/orders", tags=["Orders - Lifecycle"])
scope_guard = ScopeGuard()


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order_endpoint(
    order_data: OrderCreate,
    actor: Actor = Depends(require_actor_type([ActorType.FORWARDER, ActorType.SYSTEM])),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an order in the ``incoming`` state (Forwarder or system intake).

    Validates:
    - Forwarders only create orders for themselves
    - Tracking number is unique
    """
    order = await create_order(db, order_data, actor)
    return OrderResponse.model_validate(order)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str = Path(..., description="Order ID"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Get an order inside the caller's scope."""
    order = await load_active_order(db, order_id)
    scope_guard.enforce(order, actor)
    return OrderResponse.model_validate(order)


@router.get("/{order_id}/valid-statuses", response_model=ValidStatusesResponse)
async def get_valid_statuses(
    order_id: str = Path(..., description="Order ID"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    List the statuses the caller may move this order to.

    Used by the scanner and admin UIs to build the status picker.
    """
    order = await load_active_order(db, order_id)
    scope_guard.enforce(order, actor)

    allowed = valid_next_statuses(order.status, actor.role, actor.type)
    return ValidStatusesResponse(
        order_id=order.id,
        current_status=order.status,
        valid_next_statuses=sorted(allowed, key=status_rank),
    )


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def change_order_status(
    order_id: str = Path(..., description="Order ID"),
    transition: StatusTransitionRequest = ...,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Move an order to a new status.

    Warehouse workers move forward one step. Supervisors, managers and
    forwarders can also move backward to correct mistakes. Every accepted
    change is recorded in the order's history.
    """
    order = await TransitionExecutor.apply_transition(
        db=db,
        order_id=order_id,
        requested_status=transition.status,
        actor=actor,
        context=TransitionContext(scan_data=transition.scan_data, notes=transition.notes),
    )
    return OrderResponse.model_validate(order)


@router.get("/{order_id}/history", response_model=OrderHistoryResponse)
async def get_order_history(
    order_id: str = Path(..., description="Order ID"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the order's audit trail, oldest first.

    Also reports whether the trail forms an unbroken chain ending on the
    order's current status.
    """
    order = await load_active_order(db, order_id)
    scope_guard.enforce(order, actor)

    entries = await get_history(db, order.id)
    breaks = verify_history_chain(entries, order.status)

    return OrderHistoryResponse(
        order_id=order.id,
        current_status=order.status.value,
        entries=[HistoryEntryResponse.model_validate(e) for e in entries],
        chain_intact=not breaks,
        chain_breaks=breaks,
    )
