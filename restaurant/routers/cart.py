import logging
import uuid

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant.auth import get_caller
from restaurant.database import get_db
from restaurant.schemas.order import (
    CartInstructions,
    CartItemAdd,
    CartLineResponse,
    CartResponse,
    Checkout,
    OrderResponse,
)
from restaurant.services import menu_service, order_service
from restaurant.services.access_policy import Caller, Operation, authorize
from restaurant.services.cart import Cart

router = APIRouter()
logger = logging.getLogger(__name__)


def get_cart(request: Request, caller: Caller = Depends(get_caller)) -> Cart:
    authorize(caller, Operation.MANAGE_OWN_CART)
    return request.app.state.carts.for_customer(caller.user_id)


def _cart_response(cart: Cart) -> CartResponse:
    return CartResponse(
        lines=[
            CartLineResponse(
                menu_item_id=line.menu_item_id,
                name=line.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                subtotal=line.subtotal,
                special_instructions=line.special_instructions,
            )
            for line in cart.lines
        ],
        item_count=cart.item_count,
        total=cart.total(),
    )


@router.get("", response_model=CartResponse)
async def view_cart(cart: Cart = Depends(get_cart)) -> CartResponse:
    return _cart_response(cart)


@router.post("/items", response_model=CartResponse)
async def add_to_cart(
    body: CartItemAdd,
    caller: Caller = Depends(get_caller),
    cart: Cart = Depends(get_cart),
    db: AsyncSession = Depends(get_db),
) -> CartResponse:
    item = await menu_service.get_orderable_item(db, caller, body.menu_item_id)
    cart.add_item(item, body.special_instructions)
    logger.info(
        "Item added to cart",
        extra={"customer_id": str(caller.user_id), "item_id": str(item.id), "item_count": cart.item_count},
    )
    return _cart_response(cart)


@router.put("/items/{menu_item_id}/instructions", response_model=CartResponse)
async def set_instructions(
    menu_item_id: uuid.UUID,
    body: CartInstructions,
    cart: Cart = Depends(get_cart),
) -> CartResponse:
    cart.set_instructions(menu_item_id, body.special_instructions)
    return _cart_response(cart)


@router.delete("/items/{menu_item_id}", response_model=CartResponse)
async def remove_from_cart(menu_item_id: uuid.UUID, cart: Cart = Depends(get_cart)) -> CartResponse:
    cart.remove_item(menu_item_id)
    return _cart_response(cart)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart(request: Request, cart: Cart = Depends(get_cart)) -> None:
    request.app.state.carts.discard(cart.customer_id)


@router.post("/checkout", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def checkout(
    body: Checkout,
    caller: Caller = Depends(get_caller),
    cart: Cart = Depends(get_cart),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    logger.info(
        "Received checkout request",
        extra={"customer_id": str(caller.user_id), "item_count": cart.item_count},
    )
    return await order_service.submit_order(db, caller, cart, table_ref=body.table_ref, notes=body.notes)
