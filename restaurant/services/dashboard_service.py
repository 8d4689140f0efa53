"""
Read-side aggregates for the role dashboards.

One composer per role; nothing here writes to the database or keeps state.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant.exceptions import ValidationError
from restaurant.models.menu import MenuCategory, MenuItem
from restaurant.models.order import Order, OrderStatus
from restaurant.models.user import Role, UserProfile
from restaurant.schemas.dashboard import Capability, DashboardResponse, MenuCounts, Period, Revenue
from restaurant.services.access_policy import Caller
from restaurant.services.order_state import ACTIVE_STATUSES

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(_CENT)


def today() -> Period:
    start = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    return Period(start=start, end=start + timedelta(days=1))


def _naive_utc(value: datetime | None) -> datetime | None:
    # timestamps are stored as naive UTC
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def resolve_period(start: datetime | None, end: datetime | None) -> Period:
    start, end = _naive_utc(start), _naive_utc(end)
    default = today()
    period = Period(start=start or default.start, end=end or default.end)
    if period.end <= period.start:
        raise ValidationError(["start", "end"], "Period end must be after its start")
    return period


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


async def order_counts(db: AsyncSession, customer_id: uuid.UUID | None = None) -> dict[OrderStatus, int]:
    stmt = select(Order.status, func.count(Order.id)).group_by(Order.status)
    if customer_id is not None:
        stmt = stmt.where(Order.customer_id == customer_id)
    rows = dict((await db.execute(stmt)).all())
    return {status: rows.get(status, 0) for status in OrderStatus}


def active_count(counts: dict[OrderStatus, int]) -> int:
    return sum(count for status, count in counts.items() if status in ACTIVE_STATUSES)


async def revenue(db: AsyncSession, period: Period) -> Revenue:
    """Paid orders settled inside the period. Paid is terminal, so updated_at is the payment time."""
    stmt = select(func.sum(Order.total_amount), func.count(Order.id)).where(
        Order.status == OrderStatus.PAID,
        Order.updated_at >= period.start,
        Order.updated_at < period.end,
    )
    total, paid = (await db.execute(stmt)).one()
    return Revenue(period=period, total=_money(total), paid_orders=paid)


async def orders_created(db: AsyncSession, period: Period) -> int:
    stmt = select(func.count(Order.id)).where(
        Order.created_at >= period.start,
        Order.created_at < period.end,
    )
    return (await db.execute(stmt)).scalar_one()


async def menu_counts(db: AsyncSession) -> MenuCounts:
    items = (await db.execute(select(func.count(MenuItem.id)))).scalar_one()
    available = (
        await db.execute(select(func.count(MenuItem.id)).where(MenuItem.is_available.is_(True)))
    ).scalar_one()
    categories = (await db.execute(select(func.count(MenuCategory.id)))).scalar_one()
    return MenuCounts(items=items, available_items=available, categories=categories)


async def users_by_role(db: AsyncSession) -> dict[Role, int]:
    stmt = select(UserProfile.role, func.count(UserProfile.id)).group_by(UserProfile.role)
    rows = dict((await db.execute(stmt)).all())
    return {role: rows.get(role, 0) for role in Role}


async def total_spent(db: AsyncSession, customer_id: uuid.UUID) -> Decimal:
    stmt = select(func.sum(Order.total_amount)).where(
        Order.customer_id == customer_id,
        Order.status != OrderStatus.CANCELLED,
    )
    return _money((await db.execute(stmt)).scalar_one())


# ---------------------------------------------------------------------------
# Per-role composition
# ---------------------------------------------------------------------------


async def _compose_admin(db: AsyncSession, caller: Caller, period: Period) -> DashboardResponse:
    counts = await order_counts(db)
    return DashboardResponse(
        role=caller.role,
        capabilities=[Capability.ADMINISTRATION, Capability.SERVICE],
        order_counts=counts,
        active_orders=active_count(counts),
        orders_in_period=await orders_created(db, period),
        revenue=await revenue(db, period),
        menu=await menu_counts(db),
        users_by_role=await users_by_role(db),
    )


async def _compose_server(db: AsyncSession, caller: Caller, period: Period) -> DashboardResponse:
    counts = await order_counts(db)
    return DashboardResponse(
        role=caller.role,
        capabilities=[Capability.SERVICE],
        order_counts=counts,
        active_orders=active_count(counts),
        orders_in_period=await orders_created(db, period),
        menu=await menu_counts(db),
    )


async def _compose_client(db: AsyncSession, caller: Caller, period: Period) -> DashboardResponse:
    counts = await order_counts(db, customer_id=caller.user_id)
    return DashboardResponse(
        role=caller.role,
        capabilities=[Capability.ORDERING],
        order_counts=counts,
        active_orders=active_count(counts),
        total_spent=await total_spent(db, caller.user_id),
    )


_COMPOSERS: dict[Role, Callable[[AsyncSession, Caller, Period], Awaitable[DashboardResponse]]] = {
    Role.ADMIN: _compose_admin,
    Role.SERVER: _compose_server,
    Role.CLIENT: _compose_client,
}

_unmapped = set(Role) - set(_COMPOSERS)
if _unmapped:
    raise RuntimeError(f"Roles without a dashboard: {sorted(r.value for r in _unmapped)}")


async def compose(
    db: AsyncSession,
    caller: Caller,
    start: datetime | None = None,
    end: datetime | None = None,
) -> DashboardResponse:
    period = resolve_period(start, end)
    dashboard = await _COMPOSERS[caller.role](db, caller, period)
    logger.info(
        "Dashboard composed",
        extra={"user_id": str(caller.user_id), "role": caller.role.value},
    )
    return dashboard
