from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from restaurant.exceptions import ValidationError
from restaurant.models.order import OrderStatus
from restaurant.models.user import Role
from restaurant.schemas.dashboard import Capability
from restaurant.services import dashboard_service, order_service
from restaurant.services.cart import Cart


@pytest.fixture
async def orders(db, server, client_caller, other_client, menu):
    """Client: one paid (21.00), one cancelled (2.00), one pending (12.00). Other client: one ready."""

    async def place(caller, *items):
        cart = Cart(customer_id=caller.user_id)
        for key in items:
            cart.add_item(menu[key])
        return await order_service.submit_order(db, caller, cart)

    paid = await place(client_caller, "margherita", "margherita", "soda")
    for _ in range(5):
        await order_service.advance_order(db, server, paid.id)

    cancelled = await place(client_caller, "soda")
    await order_service.cancel_order(db, client_caller, cancelled.id)

    await place(client_caller, "calzone")

    ready = await place(other_client, "calzone")
    for _ in range(3):
        await order_service.advance_order(db, server, ready.id)


async def test_admin_dashboard(db, admin, orders):
    view = await dashboard_service.compose(db, admin)

    assert view.capabilities == [Capability.ADMINISTRATION, Capability.SERVICE]
    assert view.order_counts[OrderStatus.PAID] == 1
    assert view.order_counts[OrderStatus.CANCELLED] == 1
    assert view.order_counts[OrderStatus.PENDING] == 1
    assert view.order_counts[OrderStatus.READY] == 1
    assert view.order_counts[OrderStatus.SERVED] == 0
    assert view.active_orders == 2
    assert view.orders_in_period == 4
    assert view.revenue.total == Decimal("21.00")
    assert view.revenue.paid_orders == 1
    assert view.menu.items == 5
    assert view.menu.available_items == 4
    assert view.menu.categories == 4
    assert view.users_by_role == {Role.ADMIN: 1, Role.SERVER: 1, Role.CLIENT: 2}
    assert view.total_spent is None


async def test_server_dashboard_has_no_admin_sections(db, server, orders):
    view = await dashboard_service.compose(db, server)

    assert view.capabilities == [Capability.SERVICE]
    assert view.active_orders == 2
    assert view.revenue is None
    assert view.users_by_role is None


async def test_client_dashboard_is_scoped_to_own_orders(db, client_caller, orders):
    view = await dashboard_service.compose(db, client_caller)

    assert view.capabilities == [Capability.ORDERING]
    assert sum(view.order_counts.values()) == 3
    assert view.active_orders == 1
    # cancelled orders are not money spent
    assert view.total_spent == Decimal("33.00")
    assert view.menu is None


async def test_revenue_outside_period_is_zero(db, admin, orders):
    start = datetime.utcnow() - timedelta(days=10)
    view = await dashboard_service.compose(db, admin, start=start, end=start + timedelta(days=1))

    assert view.revenue.total == Decimal("0.00")
    assert view.orders_in_period == 0


async def test_empty_store(db, admin, users):
    view = await dashboard_service.compose(db, admin)

    assert all(count == 0 for count in view.order_counts.values())
    assert view.revenue.total == Decimal("0.00")
    assert view.menu.items == 0


def test_period_must_be_ordered():
    now = datetime.utcnow()
    with pytest.raises(ValidationError):
        dashboard_service.resolve_period(now, now - timedelta(hours=1))
