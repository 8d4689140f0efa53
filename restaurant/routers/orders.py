import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant.auth import get_caller
from restaurant.database import get_db
from restaurant.models.order import OrderStatus
from restaurant.schemas.order import OrderResponse, OrderTransitionResponse
from restaurant.services import order_service
from restaurant.services.access_policy import Caller

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=list[OrderResponse])
async def list_orders(
    status: OrderStatus | None = None,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
) -> list[OrderResponse]:
    return await order_service.list_orders(db, caller, status=status)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    return await order_service.get_order(db, caller, order_id)


@router.post("/{order_id}/advance", response_model=OrderTransitionResponse)
async def advance_order(
    order_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
) -> OrderTransitionResponse:
    logger.info(
        "Received advance_order request",
        extra={"order_id": str(order_id), "user_id": str(caller.user_id)},
    )
    return await order_service.advance_order(db, caller, order_id)


@router.post("/{order_id}/cancel", response_model=OrderTransitionResponse)
async def cancel_order(
    order_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
) -> OrderTransitionResponse:
    logger.info(
        "Received cancel_order request",
        extra={"order_id": str(order_id), "user_id": str(caller.user_id)},
    )
    return await order_service.cancel_order(db, caller, order_id)
