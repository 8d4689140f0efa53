from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel

from restaurant.models.order import OrderStatus
from restaurant.models.user import Role


class Capability(str, Enum):
    ADMINISTRATION = "administration"
    SERVICE = "service"
    ORDERING = "ordering"


class Period(BaseModel):
    start: datetime
    end: datetime


class MenuCounts(BaseModel):
    items: int
    available_items: int
    categories: int


class Revenue(BaseModel):
    period: Period
    total: Decimal
    paid_orders: int


class DashboardResponse(BaseModel):
    """Read-only aggregates; sections a role may not see stay None."""

    role: Role
    capabilities: list[Capability]
    order_counts: dict[OrderStatus, int] | None = None
    active_orders: int | None = None
    orders_in_period: int | None = None
    revenue: Revenue | None = None
    menu: MenuCounts | None = None
    users_by_role: dict[Role, int] | None = None
    total_spent: Decimal | None = None
