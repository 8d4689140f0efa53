"""
Session-scoped shopping cart.

A Cart belongs to one customer session and is passed explicitly to whatever
needs it; it is never persisted. Prices are captured the first time an item
enters the cart and are not re-read afterwards.
"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol

from restaurant.exceptions import ItemUnavailable, NotFound

logger = logging.getLogger(__name__)


class Orderable(Protocol):
    id: uuid.UUID
    name: str
    price: Decimal
    is_available: bool


@dataclass
class CartLine:
    menu_item_id: uuid.UUID
    name: str
    unit_price: Decimal
    quantity: int = 1
    special_instructions: str | None = None

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass
class Cart:
    customer_id: uuid.UUID
    _lines: dict[uuid.UUID, CartLine] = field(default_factory=dict, init=False, repr=False)

    def add_item(self, item: Orderable, special_instructions: str | None = None) -> CartLine:
        """Add one unit of `item`.

        Instructions given here only fill an empty slot on the line; use
        `set_instructions` to replace existing ones.
        """
        if not item.is_available:
            raise ItemUnavailable(item.name)

        line = self._lines.get(item.id)
        if line is None:
            line = CartLine(menu_item_id=item.id, name=item.name, unit_price=Decimal(str(item.price)))
            self._lines[item.id] = line
        else:
            line.quantity += 1
        if special_instructions and line.special_instructions is None:
            line.special_instructions = special_instructions
        return line

    def remove_item(self, menu_item_id: uuid.UUID) -> CartLine | None:
        """Take one unit off the line; returns None once the line is gone."""
        line = self._line(menu_item_id)
        line.quantity -= 1
        if line.quantity == 0:
            del self._lines[menu_item_id]
            return None
        return line

    def set_instructions(self, menu_item_id: uuid.UUID, instructions: str | None) -> CartLine:
        line = self._line(menu_item_id)
        line.special_instructions = instructions or None
        return line

    def total(self) -> Decimal:
        return sum((line.subtotal for line in self._lines.values()), Decimal("0.00"))

    def clear(self) -> None:
        self._lines.clear()

    @property
    def lines(self) -> list[CartLine]:
        # dicts keep insertion order, so lines come back in the order they were added
        return list(self._lines.values())

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def is_empty(self) -> bool:
        return not self._lines

    def _line(self, menu_item_id: uuid.UUID) -> CartLine:
        try:
            return self._lines[menu_item_id]
        except KeyError:
            raise NotFound("Cart line") from None


class CartRegistry:
    """One cart per customer for the lifetime of the process."""

    def __init__(self) -> None:
        self._carts: dict[uuid.UUID, Cart] = {}

    def for_customer(self, customer_id: uuid.UUID) -> Cart:
        cart = self._carts.get(customer_id)
        if cart is None:
            cart = self._carts[customer_id] = Cart(customer_id=customer_id)
        return cart

    def discard(self, customer_id: uuid.UUID) -> None:
        if self._carts.pop(customer_id, None) is not None:
            logger.info("Cart abandoned", extra={"customer_id": str(customer_id)})
