"""
Scan resolution service.

Turns a raw barcode/QR value into an order inside the actor's scope and
routes it to a status change or a check-in scan. Scans that cannot be
resolved, or that resolve to an order the actor may not touch, are
logged as audit entries instead of being dropped.
"""

import logging
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    ScanOrderNotFoundError,
    UnauthorizedActorError,
    TransitionConflictError,
)
from backend.app.core.guards import in_scope
from backend.app.domain.lifecycle.transition_executor import TransitionExecutor, ensure_actor_role
from backend.app.models.enums import ActorType
from backend.app.models.order import Order
from backend.app.models.order_enums import HistoryEventType, StaffActivityType
from backend.app.models.order_status_history import OrderStatusHistory
from backend.app.schemas.actor import Actor
from backend.app.schemas.order import ScanData, TransitionContext
from backend.app.services.status_history import log_transition, validate_order_ref
from backend.app.services.staff_activity import record_activity

logger = logging.getLogger("forwarding.scanner")

NOT_FOUND_NOTE = "Package scanned - order not found"
FORBIDDEN_NOTE = "Package scanned - order outside actor scope"
CHECK_IN_NOTE = "Package scanned"


class ScanPayload(NamedTuple):
    """Fields decoded from a raw scan value."""
    raw: str
    order_ref: str
    tracking_number: Optional[str]
    courier: Optional[str]


class ScanOutcome(NamedTuple):
    """Result of a resolved scan."""
    order: Order
    history_entry: OrderStatusHistory
    status_changed: bool


def parse_scan_value(raw: str, separator: Optional[str] = None) -> ScanPayload:
    """
    Split a raw scan value of the form ``orderId|trackingNumber|courier``.

    A value without the separator is a bare order id or tracking number
    and is used as both. Missing or blank trailing parts become None.
    """
    separator = separator or settings.scan_field_separator
    value = raw.strip()

    if separator not in value:
        return ScanPayload(raw=raw, order_ref=value, tracking_number=value, courier=None)

    parts = [part.strip() or None for part in value.split(separator)]
    parts += [None] * (3 - len(parts))
    order_ref, tracking_number, courier = parts[0], parts[1], parts[2]

    return ScanPayload(
        raw=raw,
        order_ref=order_ref or tracking_number or value,
        tracking_number=tracking_number,
        courier=courier,
    )


async def find_order_for_scan(db: AsyncSession, payload: ScanPayload) -> Optional[Order]:
    """Look up an active order by id or tracking number, ignoring scope."""
    candidates = [Order.id == payload.order_ref, Order.tracking_number == payload.order_ref]
    if payload.tracking_number:
        candidates.append(Order.tracking_number == payload.tracking_number)

    result = await db.execute(
        select(Order).where(Order.is_active == True, or_(*candidates)).limit(1)
    )
    return result.scalar_one_or_none()


class ScanService:

    @staticmethod
    async def record_unresolved_scan(
        db: AsyncSession,
        payload: ScanPayload,
        actor: Actor,
        scan_data: ScanData,
        event_type: HistoryEventType,
        notes: str,
    ) -> OrderStatusHistory:
        """Log a scan that did not lead to an order under its raw value, and commit."""
        entry = await log_transition(
            db=db,
            order_id=validate_order_ref(payload.raw),
            previous_status=None,
            new_status=None,
            actor=actor,
            scan_data=scan_data.model_dump(),
            notes=notes,
            event_type=event_type,
        )
        await db.commit()

        logger.warning(
            "Scan did not resolve to an accessible order",
            extra={
                "barcode_value": payload.raw,
                "event_type": event_type.value,
                "history_id": entry.id,
                "actor_id": actor.id,
                "location": scan_data.location,
            }
        )
        return entry

    @staticmethod
    async def log_scan(
        db: AsyncSession,
        order: Order,
        actor: Actor,
        scan_data: ScanData,
        notes: Optional[str] = None,
    ) -> OrderStatusHistory:
        """
        Record a check-in scan that leaves the status unchanged.

        The entry's previous and new status are both the status that was
        read, which keeps the order's history chain intact. The write is
        guarded on the version that was read: if a transition committed in
        between, nothing is appended and TransitionConflictError is raised.
        """
        order_key = order.id
        read_status = order.status
        read_version = order.version

        try:
            result = await db.execute(
                update(Order)
                .where(Order.id == order_key, Order.version == read_version)
                .values(updated_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await db.rollback()
                logger.warning(
                    "Check-in scan lost a concurrent update",
                    extra={
                        "order_id": order_key,
                        "expected_version": read_version,
                        "actor_id": actor.id,
                    }
                )
                raise TransitionConflictError(order_key, read_status.value, read_status.value)

            entry = await log_transition(
                db=db,
                order_id=order_key,
                previous_status=read_status,
                new_status=read_status,
                actor=actor,
                scan_data=scan_data.model_dump(),
                notes=notes or CHECK_IN_NOTE,
                event_type=HistoryEventType.SCAN,
                forwarder_id=order.forwarder_id,
                warehouse_id=order.warehouse_id,
            )

            if actor.type == ActorType.STAFF:
                await record_activity(
                    db=db,
                    staff_id=actor.id,
                    forwarder_id=order.forwarder_id,
                    warehouse_id=order.warehouse_id,
                    activity_type=StaffActivityType.SCAN,
                    order_id=order_key,
                    scan_location=scan_data.location,
                )

            await db.commit()
        except TransitionConflictError:
            raise
        except Exception:
            await db.rollback()
            raise

        return entry

    @staticmethod
    async def process_scan(
        db: AsyncSession,
        raw_value: str,
        actor: Actor,
        location: str = "",
        device_info: str = "",
        requested_status: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ScanOutcome:
        """
        Resolve a raw scan and act on it.

        Returns:
            ScanOutcome with the order and the history entry this scan wrote

        Raises:
            ScanOrderNotFoundError: nothing matched (the scan is logged)
            UnauthorizedActorError: matched outside actor scope (the scan is logged)
            TransitionConflictError: the order changed while the scan was processed
            Any error of TransitionExecutor.execute_transition
        """
        payload = parse_scan_value(raw_value)
        scan_data = ScanData(barcode_value=raw_value, location=location, device_info=device_info)

        order = await find_order_for_scan(db, payload)

        if order is None:
            entry = await ScanService.record_unresolved_scan(
                db, payload, actor, scan_data, HistoryEventType.SCAN_NOT_FOUND, NOT_FOUND_NOTE
            )
            raise ScanOrderNotFoundError(raw_value, entry.id)

        if not in_scope(order, actor):
            entry = await ScanService.record_unresolved_scan(
                db, payload, actor, scan_data, HistoryEventType.SCAN_FORBIDDEN, FORBIDDEN_NOTE
            )
            raise UnauthorizedActorError(
                "Package belongs to a warehouse outside your assignment",
                details={"barcode_value": raw_value, "history_entry_id": entry.id}
            )

        if requested_status is None:
            ensure_actor_role(actor)
            entry = await ScanService.log_scan(db, order, actor, scan_data, notes)
            await db.refresh(order)
            return ScanOutcome(order=order, history_entry=entry, status_changed=False)

        updated, entry = await TransitionExecutor.execute_transition(
            db=db,
            order_id=order.id,
            requested_status=requested_status,
            actor=actor,
            context=TransitionContext(scan_data=scan_data, notes=notes),
        )
        return ScanOutcome(order=updated, history_entry=entry, status_changed=True)
