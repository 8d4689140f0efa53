import logging
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from restaurant.exceptions import EmptyCart, Forbidden, InvalidTransition, NotFound
from restaurant.metrics import ORDER_TRANSITIONS, ORDER_VALUE, ORDERS_SUBMITTED, REJECTED_TRANSITIONS
from restaurant.models.order import Order, OrderItem, OrderStatus
from restaurant.models.user import UserProfile
from restaurant.schemas.order import OrderItemResponse, OrderResponse, OrderTransitionResponse
from restaurant.services import order_state
from restaurant.services.access_policy import (
    Caller,
    Operation,
    authorize,
    authorize_any_or_own,
    is_allowed,
)
from restaurant.services.cart import Cart
from restaurant.services.locks import KeyedLocks

logger = logging.getLogger(__name__)

# Serialises advance/cancel per order id inside this process; the row lock
# taken in _fetch_order covers other processes.
_order_locks = KeyedLocks()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def build_response(order: Order) -> OrderResponse:
    items = [
        OrderItemResponse(
            id=item.id,
            menu_item_id=item.menu_item_id,
            menu_item_name=item.menu_item.name if item.menu_item else "Unknown",
            quantity=item.quantity,
            unit_price=item.unit_price,
            subtotal=item.subtotal,
            special_instructions=item.special_instructions,
        )
        for item in order.items
    ]

    return OrderResponse(
        id=order.id,
        customer_id=order.customer_id,
        customer_name=order.customer.full_name if order.customer else "Unknown",
        status=order.status,
        table_ref=order.table_ref,
        notes=order.notes,
        total_amount=order.total_amount,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=items,
    )


def _with_details(stmt):
    return stmt.options(
        selectinload(Order.items).selectinload(OrderItem.menu_item),
        selectinload(Order.customer),
    ).execution_options(populate_existing=True)


async def _fetch_order(db: AsyncSession, order_id: uuid.UUID, for_update: bool = False) -> Order | None:
    stmt = select(Order).where(Order.id == order_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(_with_details(stmt))
    return result.scalars().first()


async def _load_for_transition(
    db: AsyncSession,
    caller: Caller,
    order_id: uuid.UUID,
    any_op: Operation,
    own_op: Operation | None,
) -> Order:
    """Lock the order row and check the caller may act on it."""
    order = await _fetch_order(db, order_id, for_update=True)
    if order is None and is_allowed(caller, any_op):
        raise NotFound("Order")
    if own_op is None:
        authorize(caller, any_op)
    else:
        authorize_any_or_own(caller, order.customer_id if order else None, any_op, own_op)
    return order


async def _apply_transition(db: AsyncSession, order: Order, new_status: OrderStatus) -> OrderStatus:
    previous = order.status
    order.status = new_status
    order.updated_at = datetime.utcnow()
    await db.commit()

    ORDER_TRANSITIONS.labels(previous.value, new_status.value).inc()
    logger.info(
        "Order status changed",
        extra={"order_id": str(order.id), "from_status": previous.value, "to_status": new_status.value},
    )
    return previous


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def submit_order(
    db: AsyncSession,
    caller: Caller,
    cart: Cart,
    customer_id: uuid.UUID | None = None,
    table_ref: str | None = None,
    notes: str | None = None,
) -> OrderResponse:
    """Turn the cart into a pending order; order and items land in one transaction."""
    authorize(caller, Operation.SUBMIT_OWN_ORDER)
    customer_id = customer_id or caller.user_id
    if customer_id != caller.user_id or cart.customer_id != caller.user_id:
        raise Forbidden()

    if cart.is_empty():
        raise EmptyCart()

    if await db.get(UserProfile, customer_id) is None:
        raise NotFound("Customer profile")

    # 1. Freeze the cart lines; unit prices are the ones captured by the cart
    items = [
        OrderItem(
            menu_item_id=line.menu_item_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            special_instructions=line.special_instructions,
        )
        for line in cart.lines
    ]
    total = sum((item.subtotal for item in items), Decimal("0.00"))

    # 2. Persist order + items atomically
    order = Order(
        customer_id=customer_id,
        status=order_state.INITIAL_STATUS,
        table_ref=table_ref,
        notes=notes,
        total_amount=total,
        items=items,
    )
    db.add(order)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    ORDERS_SUBMITTED.inc()
    ORDER_VALUE.observe(float(total))
    logger.info(
        "Order submitted",
        extra={
            "order_id": str(order.id),
            "customer_id": str(customer_id),
            "amount": str(total),
            "item_count": len(items),
        },
    )

    # 3. The cart has served its purpose
    cart.clear()

    order = await _fetch_order(db, order.id)
    return build_response(order)


async def get_order(db: AsyncSession, caller: Caller, order_id: uuid.UUID) -> OrderResponse:
    order = await _fetch_order(db, order_id)
    if order is None and is_allowed(caller, Operation.VIEW_ALL_ORDERS):
        raise NotFound("Order")
    authorize_any_or_own(
        caller,
        order.customer_id if order else None,
        Operation.VIEW_ALL_ORDERS,
        Operation.VIEW_OWN_ORDERS,
    )
    return build_response(order)


async def list_orders(
    db: AsyncSession,
    caller: Caller,
    status: OrderStatus | None = None,
) -> list[OrderResponse]:
    """Newest first. Staff see every order, clients only their own."""
    stmt = select(Order)
    if not is_allowed(caller, Operation.VIEW_ALL_ORDERS):
        authorize(caller, Operation.VIEW_OWN_ORDERS)
        stmt = stmt.where(Order.customer_id == caller.user_id)
    if status is not None:
        stmt = stmt.where(Order.status == status)
    stmt = stmt.order_by(Order.created_at.desc())

    result = await db.execute(_with_details(stmt))
    return [build_response(order) for order in result.scalars().all()]


async def advance_order(db: AsyncSession, caller: Caller, order_id: uuid.UUID) -> OrderTransitionResponse:
    """Move the order one step along the forward chain."""
    authorize(caller, Operation.ADVANCE_ANY_ORDER)

    async with _order_locks.for_key(order_id):
        order = await _load_for_transition(db, caller, order_id, Operation.ADVANCE_ANY_ORDER, None)
        try:
            new_status = order_state.next_status(order.status)
        except InvalidTransition:
            REJECTED_TRANSITIONS.labels("advance", order.status.value).inc()
            await db.rollback()
            raise

        previous = await _apply_transition(db, order, new_status)

    return OrderTransitionResponse(order=build_response(order), previous_status=previous, changed=True)


async def cancel_order(db: AsyncSession, caller: Caller, order_id: uuid.UUID) -> OrderTransitionResponse:
    """Cancel from any non-terminal status.

    Cancelling an order that is already cancelled succeeds without touching
    it (changed=False); cancelling a paid order raises InvalidTransition.
    """
    async with _order_locks.for_key(order_id):
        order = await _load_for_transition(
            db, caller, order_id, Operation.CANCEL_ANY_ORDER, Operation.CANCEL_OWN_ORDER
        )
        try:
            will_change = order_state.check_cancellable(order.status)
        except InvalidTransition:
            REJECTED_TRANSITIONS.labels("cancel", order.status.value).inc()
            await db.rollback()
            raise

        if not will_change:
            # rollback expires the instance, so render it first
            outcome = OrderTransitionResponse(
                order=build_response(order), previous_status=order.status, changed=False
            )
            await db.rollback()
            logger.info("Order already cancelled", extra={"order_id": str(outcome.order.id)})
            return outcome

        previous = await _apply_transition(db, order, OrderStatus.CANCELLED)

    return OrderTransitionResponse(order=build_response(order), previous_status=previous, changed=True)
