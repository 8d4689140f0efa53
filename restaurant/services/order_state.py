"""
Order status state machine.

    pending -> confirmed -> in_preparation -> ready -> served -> paid

`advance` moves exactly one step along that chain. `cancel` jumps to
cancelled from any non-terminal status. paid and cancelled are terminal.
"""

from restaurant.exceptions import InvalidTransition
from restaurant.models.order import OrderStatus

INITIAL_STATUS = OrderStatus.PENDING

TERMINAL_STATUSES = frozenset({OrderStatus.PAID, OrderStatus.CANCELLED})

# Orders still needing attention from staff
ACTIVE_STATUSES = frozenset(
    {
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.IN_PREPARATION,
        OrderStatus.READY,
    }
)

_NEXT_STATUS: dict[OrderStatus, OrderStatus | None] = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.IN_PREPARATION,
    OrderStatus.IN_PREPARATION: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.SERVED,
    OrderStatus.SERVED: OrderStatus.PAID,
    OrderStatus.PAID: None,
    OrderStatus.CANCELLED: None,
}

_unmapped = set(OrderStatus) - set(_NEXT_STATUS)
if _unmapped:
    raise RuntimeError(f"Statuses missing from the transition table: {sorted(s.value for s in _unmapped)}")


def next_status(current: OrderStatus) -> OrderStatus:
    """Return the sole successor of `current`, or raise InvalidTransition."""
    successor = _NEXT_STATUS[current]
    if current in TERMINAL_STATUSES or successor is None:
        raise InvalidTransition(current.value, "advance")
    return successor


def check_cancellable(current: OrderStatus) -> bool:
    """True when cancel would change the status, False when it is already cancelled.

    Raises InvalidTransition for paid orders.
    """
    if current == OrderStatus.CANCELLED:
        return False
    if current == OrderStatus.PAID:
        raise InvalidTransition(current.value, "cancel")
    return True


def is_active(status: OrderStatus) -> bool:
    return status in ACTIVE_STATUSES
