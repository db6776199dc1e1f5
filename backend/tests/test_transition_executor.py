"""
Integration tests for the transition executor.

Tests legal and illegal transitions, no-op failures, milestone
timestamps and scope enforcement against an in-memory database.
"""

import pytest
from sqlalchemy import select, func

from backend.app.core.exceptions import (
    OrderNotFoundError,
    InvalidStatusError,
    IllegalTransitionError,
    UnauthorizedActorError,
)
from backend.app.domain.lifecycle.transition_executor import TransitionExecutor
from backend.app.models.enums import ActorType
from backend.app.models.order_enums import OrderStatus, HistoryEventType, StaffActivityType
from backend.app.models.order_status_history import OrderStatusHistory
from backend.app.models.staff_activity import StaffActivity
from backend.app.schemas.actor import Actor
from backend.app.schemas.order import ScanData, TransitionContext
from backend.app.services.status_history import get_history


async def history_length(db, order_id):
    result = await db.execute(
        select(func.count(OrderStatusHistory.id)).where(OrderStatusHistory.order_id == order_id)
    )
    return result.scalar()


async def walk(db, order, actor, *statuses):
    for status in statuses:
        order = await TransitionExecutor.apply_transition(db, order.id, status, actor)
    return order


@pytest.mark.asyncio
async def test_worker_cannot_skip_a_status(db_session, order, worker):
    """incoming -> packed is rejected for a worker and nothing changes."""
    with pytest.raises(IllegalTransitionError) as exc_info:
        await TransitionExecutor.apply_transition(db_session, order.id, "packed", worker)

    details = exc_info.value.details
    assert details["current_status"] == "incoming"
    assert details["attempted_status"] == "packed"
    assert details["role"] == "warehouse_worker"
    assert details["allowed_statuses"] == ["arrived_at_warehouse"]

    await db_session.refresh(order)
    assert order.status == OrderStatus.INCOMING
    assert order.version == 1
    assert await history_length(db_session, order.id) == 0


@pytest.mark.asyncio
async def test_worker_receives_package(db_session, order, worker):
    """incoming -> arrived_at_warehouse sets received_at and writes one entry."""
    updated = await TransitionExecutor.apply_transition(
        db_session, order.id, "arrived_at_warehouse", worker
    )

    assert updated.status == OrderStatus.ARRIVED_AT_WAREHOUSE
    assert updated.received_at is not None
    assert updated.version == 2

    history = await get_history(db_session, order.id)
    assert len(history) == 1
    entry = history[0]
    assert entry.previous_status == "incoming"
    assert entry.new_status == "arrived_at_warehouse"
    assert entry.changed_by == worker.id
    assert entry.changed_by_type == ActorType.STAFF
    assert entry.actor_role == "warehouse_worker"
    assert entry.event_type == HistoryEventType.STATUS_CHANGE
    assert entry.forwarder_id == order.forwarder_id
    assert entry.warehouse_id == order.warehouse_id
    assert entry.changed_at is not None


@pytest.mark.asyncio
async def test_manager_moves_delivered_back_to_packed(db_session, order, forwarder, manager):
    """Backward admin transition is accepted and delivered_at is preserved."""
    order = await walk(
        db_session, order, forwarder,
        "arrived_at_warehouse", "packed", "awaiting_pickup", "in_transit", "delivered",
    )
    delivered_at = order.delivered_at
    packed_at = order.packed_at
    assert delivered_at is not None

    updated = await TransitionExecutor.apply_transition(
        db_session, order.id, "packed", manager, TransitionContext(notes="Returned to shelf")
    )

    assert updated.status == OrderStatus.PACKED
    assert updated.delivered_at == delivered_at
    assert updated.packed_at == packed_at

    last = (await get_history(db_session, order.id))[-1]
    assert last.previous_status == "delivered"
    assert last.new_status == "packed"
    assert last.notes == "Returned to shelf (status reversal by manager)"


@pytest.mark.asyncio
async def test_milestones_are_set_once(db_session, order, worker, supervisor):
    """No later transition changes a milestone once it is set."""
    order = await walk(db_session, order, worker, "arrived_at_warehouse", "packed")
    received_at = order.received_at
    packed_at = order.packed_at

    # Back to arrived, then forward again
    order = await TransitionExecutor.apply_transition(db_session, order.id, "arrived_at_warehouse", supervisor)
    assert order.received_at == received_at

    order = await walk(db_session, order, worker, "packed", "awaiting_pickup", "in_transit")
    assert order.received_at == received_at
    assert order.packed_at == packed_at
    assert order.awaiting_pickup_at is not None
    assert order.shipped_at is not None
    assert order.delivered_at is None


@pytest.mark.asyncio
async def test_backward_jump_to_unreached_status_sets_its_milestone(db_session, order, forwarder):
    """A status reached for the first time gets its milestone, whatever the direction."""
    order = await TransitionExecutor.apply_transition(db_session, order.id, "delivered", forwarder)
    assert order.delivered_at is not None
    assert order.packed_at is None

    order = await TransitionExecutor.apply_transition(db_session, order.id, "packed", forwarder)
    assert order.packed_at is not None


@pytest.mark.asyncio
async def test_legacy_status_names_are_normalized(db_session, order, worker):
    order = await TransitionExecutor.apply_transition(db_session, order.id, "received", worker)
    assert order.status == OrderStatus.ARRIVED_AT_WAREHOUSE

    order = await walk(db_session, order, worker, "packed", "awaiting_pickup", "shipped")
    assert order.status == OrderStatus.IN_TRANSIT
    assert order.shipped_at is not None


@pytest.mark.asyncio
async def test_unknown_order_raises_not_found(db_session, worker):
    with pytest.raises(OrderNotFoundError):
        await TransitionExecutor.apply_transition(db_session, "missing-order", "packed", worker)

    assert await history_length(db_session, "missing-order") == 0


@pytest.mark.asyncio
async def test_unknown_status_raises_invalid_status(db_session, order, manager):
    with pytest.raises(InvalidStatusError):
        await TransitionExecutor.apply_transition(db_session, order.id, "teleported", manager)

    await db_session.refresh(order)
    assert order.status == OrderStatus.INCOMING
    assert await history_length(db_session, order.id) == 0


@pytest.mark.asyncio
async def test_same_status_is_rejected(db_session, order, manager):
    with pytest.raises(IllegalTransitionError):
        await TransitionExecutor.apply_transition(db_session, order.id, "incoming", manager)


@pytest.mark.asyncio
async def test_worker_at_delivered_is_rejected(db_session, order, forwarder, worker):
    order = await TransitionExecutor.apply_transition(db_session, order.id, "delivered", forwarder)

    with pytest.raises(IllegalTransitionError) as exc_info:
        await TransitionExecutor.apply_transition(db_session, order.id, "in_transit", worker)

    assert exc_info.value.details["allowed_statuses"] == []
    await db_session.refresh(order)
    assert order.status == OrderStatus.DELIVERED
    assert await history_length(db_session, order.id) == 1


@pytest.mark.asyncio
async def test_unrecognized_role_is_rejected(db_session, order):
    janitor = Actor(
        id="staff_janitor", type=ActorType.STAFF, role="janitor",
        forwarder_id="fwd_alpha", warehouse_ids=["wh_main"],
    )

    with pytest.raises(IllegalTransitionError):
        await TransitionExecutor.apply_transition(db_session, order.id, "arrived_at_warehouse", janitor)

    assert await history_length(db_session, order.id) == 0


@pytest.mark.asyncio
async def test_staff_without_role_is_unauthorized(db_session, order):
    nameless = Actor(id="staff_x", type=ActorType.STAFF, forwarder_id="fwd_alpha", warehouse_ids=["wh_main"])

    with pytest.raises(UnauthorizedActorError):
        await TransitionExecutor.apply_transition(db_session, order.id, "arrived_at_warehouse", nameless)


@pytest.mark.asyncio
async def test_staff_outside_warehouse_is_unauthorized(db_session, order, outside_worker):
    with pytest.raises(UnauthorizedActorError):
        await TransitionExecutor.apply_transition(db_session, order.id, "arrived_at_warehouse", outside_worker)

    await db_session.refresh(order)
    assert order.status == OrderStatus.INCOMING
    assert await history_length(db_session, order.id) == 0


@pytest.mark.asyncio
async def test_other_forwarder_is_unauthorized(db_session, order, other_forwarder):
    with pytest.raises(UnauthorizedActorError):
        await TransitionExecutor.apply_transition(db_session, order.id, "packed", other_forwarder)


@pytest.mark.asyncio
async def test_scan_context_is_recorded(db_session, order, worker):
    context = TransitionContext(
        scan_data=ScanData(barcode_value=f"{order.id}|{order.tracking_number}|DHL", location="Gate A", device_info="Zebra TC52"),
        notes="Arrived on morning truck",
    )

    await TransitionExecutor.apply_transition(db_session, order.id, "arrived_at_warehouse", worker, context)

    entry = (await get_history(db_session, order.id))[0]
    assert entry.scan_data == {
        "barcode_value": f"{order.id}|{order.tracking_number}|DHL",
        "location": "Gate A",
        "device_info": "Zebra TC52",
    }
    assert entry.notes == "Arrived on morning truck"


@pytest.mark.asyncio
async def test_staff_transition_records_activity(db_session, order, worker, forwarder):
    await TransitionExecutor.apply_transition(
        db_session, order.id, "arrived_at_warehouse", worker,
        TransitionContext(scan_data=ScanData(barcode_value=order.tracking_number, location="Dock 2")),
    )
    await TransitionExecutor.apply_transition(db_session, order.id, "packed", forwarder)

    result = await db_session.execute(select(StaffActivity))
    activities = result.scalars().all()

    assert len(activities) == 1
    activity = activities[0]
    assert activity.staff_id == worker.id
    assert activity.activity_type == StaffActivityType.STATUS_UPDATE
    assert activity.details == {
        "old_status": "incoming",
        "new_status": "arrived_at_warehouse",
        "scan_location": "Dock 2",
    }


@pytest.mark.asyncio
async def test_system_actor_can_mark_delivered(db_session, order, forwarder, system_actor):
    order = await walk(db_session, order, forwarder, "in_transit")

    order = await TransitionExecutor.apply_transition(db_session, order.id, "delivered", system_actor)

    assert order.status == OrderStatus.DELIVERED
    entry = (await get_history(db_session, order.id))[-1]
    assert entry.changed_by_type == ActorType.SYSTEM


@pytest.mark.asyncio
async def test_execute_transition_returns_its_own_entry(db_session, order, worker):
    """The entry handed back is the one this change wrote, even once later entries exist."""
    order_id = order.id
    updated, entry = await TransitionExecutor.execute_transition(
        db_session, order_id, "arrived_at_warehouse", worker
    )

    assert updated.status == OrderStatus.ARRIVED_AT_WAREHOUSE
    assert entry.id is not None
    assert entry.event_type == HistoryEventType.STATUS_CHANGE
    assert (entry.previous_status, entry.new_status) == ("incoming", "arrived_at_warehouse")

    later, _ = await TransitionExecutor.execute_transition(db_session, order_id, "packed", worker)
    assert later.status == OrderStatus.PACKED

    history = await get_history(db_session, order_id)
    assert history[0].id == entry.id
    assert history[-1].id != entry.id
