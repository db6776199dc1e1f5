"""
Order intake service.

Creates orders in the initial lifecycle state. The implicit
``None -> incoming`` step is not written to the status history.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import DuplicateTrackingNumberError, UnauthorizedActorError
from backend.app.models.enums import ActorType
from backend.app.models.order import Order
from backend.app.models.order_enums import INITIAL_STATUS
from backend.app.schemas.actor import Actor
from backend.app.schemas.order import OrderCreate

logger = logging.getLogger("forwarding.intake")


def generate_tracking_number() -> str:
    return f"PF{uuid.uuid4().hex[:10].upper()}"


def intake_forwarder_id(data: OrderCreate, actor: Actor) -> str:
    """Forwarders create orders for themselves; system intake names the forwarder."""
    if actor.type == ActorType.FORWARDER:
        if data.forwarder_id and data.forwarder_id != actor.tenant_id:
            raise UnauthorizedActorError("Forwarders can only create orders for their own business")
        return actor.tenant_id

    if actor.type == ActorType.SYSTEM and data.forwarder_id:
        return data.forwarder_id

    raise UnauthorizedActorError(
        "Only forwarders and system intake can create orders",
        details={"actor_type": actor.type.value}
    )


async def create_order(db: AsyncSession, data: OrderCreate, actor: Actor) -> Order:
    """
    Create a new order in the ``incoming`` state.

    Validates:
    - Actor may create orders for the forwarder
    - Tracking number is unique (one is generated when omitted)
    """
    forwarder_id = intake_forwarder_id(data, actor)
    tracking_number = data.tracking_number or generate_tracking_number()

    existing = await db.execute(
        select(Order.id).where(Order.tracking_number == tracking_number)
    )
    if existing.scalar_one_or_none():
        raise DuplicateTrackingNumberError(tracking_number)

    order = Order(
        forwarder_id=forwarder_id,
        warehouse_id=data.warehouse_id,
        customer_id=data.customer_id,
        tracking_number=tracking_number,
        courier=data.courier,
        courier_tracking_number=data.courier_tracking_number,
        merchant_name=data.merchant_name,
        description=data.description,
        status=INITIAL_STATUS,
        version=1,
        is_active=True,
    )

    db.add(order)
    await db.commit()
    await db.refresh(order)

    logger.info(
        "Order created",
        extra={
            "order_id": order.id,
            "tracking_number": order.tracking_number,
            "forwarder_id": forwarder_id,
            "warehouse_id": order.warehouse_id,
            "actor_id": actor.id,
        }
    )
    return order
