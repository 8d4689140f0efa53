"""
Role -> permitted operations.

Every mutating call in the menu and order services goes through `authorize`
before touching the database. Ownership checks for clients come on top of
the role check and fail with the same generic `Forbidden`.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum

from restaurant.exceptions import Forbidden, ValidationError
from restaurant.models.user import Role

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    MANAGE_MENU = "manage_menu"
    MANAGE_USERS = "manage_users"
    VIEW_ALL_ORDERS = "view_all_orders"
    ADVANCE_ANY_ORDER = "advance_any_order"
    CANCEL_ANY_ORDER = "cancel_any_order"
    BROWSE_MENU = "browse_menu"
    MANAGE_OWN_CART = "manage_own_cart"
    SUBMIT_OWN_ORDER = "submit_own_order"
    VIEW_OWN_ORDERS = "view_own_orders"
    CANCEL_OWN_ORDER = "cancel_own_order"


PERMISSIONS: dict[Role, frozenset[Operation]] = {
    Role.ADMIN: frozenset(
        {
            Operation.MANAGE_MENU,
            Operation.MANAGE_USERS,
            Operation.VIEW_ALL_ORDERS,
            Operation.ADVANCE_ANY_ORDER,
            Operation.CANCEL_ANY_ORDER,
            Operation.BROWSE_MENU,
        }
    ),
    Role.SERVER: frozenset(
        {
            Operation.VIEW_ALL_ORDERS,
            Operation.ADVANCE_ANY_ORDER,
            Operation.CANCEL_ANY_ORDER,
            Operation.BROWSE_MENU,
        }
    ),
    Role.CLIENT: frozenset(
        {
            Operation.BROWSE_MENU,
            Operation.MANAGE_OWN_CART,
            Operation.SUBMIT_OWN_ORDER,
            Operation.VIEW_OWN_ORDERS,
            Operation.CANCEL_OWN_ORDER,
        }
    ),
}

_unmapped = set(Role) - set(PERMISSIONS)
if _unmapped:
    raise RuntimeError(f"Roles without a permission set: {sorted(r.value for r in _unmapped)}")


@dataclass(frozen=True)
class Caller:
    """The (user id, role) pair handed over by the authentication provider."""

    user_id: uuid.UUID
    role: Role


def parse_role(value: str) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValidationError(["role"], f"Unknown role: {value!r}") from None


def permissions_for(role: Role) -> frozenset[Operation]:
    return PERMISSIONS[role]


def is_allowed(caller: Caller, operation: Operation) -> bool:
    return operation in PERMISSIONS[caller.role]


def authorize(caller: Caller, operation: Operation) -> None:
    if not is_allowed(caller, operation):
        logger.warning(
            "Denied operation",
            extra={"user_id": str(caller.user_id), "role": caller.role.value, "operation": operation.value},
        )
        raise Forbidden()


def authorize_any_or_own(
    caller: Caller,
    owner_id: uuid.UUID | None,
    any_operation: Operation,
    own_operation: Operation,
) -> None:
    """Allow `any_operation` outright, or `own_operation` when the caller owns the row.

    `owner_id` is None when the row does not exist; that is reported as
    Forbidden to callers who could only ever see their own rows.
    """
    if is_allowed(caller, any_operation):
        return
    if is_allowed(caller, own_operation) and owner_id is not None and owner_id == caller.user_id:
        return
    logger.warning(
        "Denied operation",
        extra={"user_id": str(caller.user_id), "role": caller.role.value, "operation": own_operation.value},
    )
    raise Forbidden()
