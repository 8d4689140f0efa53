import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from restaurant.models.order import OrderStatus


class CartItemAdd(BaseModel):
    menu_item_id: uuid.UUID
    special_instructions: str | None = None


class CartInstructions(BaseModel):
    special_instructions: str | None = None


class CartLineResponse(BaseModel):
    menu_item_id: uuid.UUID
    name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    special_instructions: str | None


class CartResponse(BaseModel):
    lines: list[CartLineResponse]
    item_count: int
    total: Decimal


class Checkout(BaseModel):
    table_ref: str | None = Field(default=None, max_length=50)
    notes: str | None = None


class OrderItemResponse(BaseModel):
    id: uuid.UUID
    menu_item_id: uuid.UUID
    menu_item_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    special_instructions: str | None


class OrderResponse(BaseModel):
    id: uuid.UUID
    customer_id: uuid.UUID
    customer_name: str
    status: OrderStatus
    table_ref: str | None
    notes: str | None
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemResponse]


class OrderTransitionResponse(BaseModel):
    order: OrderResponse
    previous_status: OrderStatus
    changed: bool
