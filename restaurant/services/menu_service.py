import logging
import uuid
from collections.abc import Iterator, Mapping
from decimal import Decimal
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant.database import AsyncSessionLocal
from restaurant.exceptions import ItemUnavailable, NotFound, ValidationError
from restaurant.models.menu import MenuCategory, MenuItem
from restaurant.schemas.menu import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MenuSection,
)
from restaurant.services.access_policy import Caller, Operation, authorize

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_MENU_SEED = [
    {
        "name": "Pizzas",
        "description": "Wood-fired, made to order",
        "display_order": 1,
        "items": [
            {"name": "Margherita Pizza", "price": Decimal("9.50"), "preparation_time": 15,
             "allergens": ["gluten", "milk"]},
            {"name": "Pepperoni Pizza", "price": Decimal("11.50"), "preparation_time": 15,
             "allergens": ["gluten", "milk"]},
        ],
    },
    {
        "name": "Starters",
        "description": None,
        "display_order": 0,
        "items": [
            {"name": "Caesar Salad", "price": Decimal("8.99"), "preparation_time": 10,
             "allergens": ["egg", "fish", "milk"]},
            {"name": "Garlic Bread", "price": Decimal("4.99"), "preparation_time": 8,
             "allergens": ["gluten"]},
        ],
    },
    {
        "name": "Drinks",
        "description": None,
        "display_order": 2,
        "items": [
            {"name": "Soda", "price": Decimal("2.00"), "preparation_time": 0},
            {"name": "Water", "price": Decimal("1.50"), "preparation_time": 0},
        ],
    },
]


async def seed_menu() -> None:
    """Populate the catalog if it is empty. Called once on startup."""
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(MenuCategory).limit(1))
        if result.scalars().first() is not None:
            return
        item_count = 0
        for category_data in _MENU_SEED:
            items = [MenuItem(**item) for item in category_data["items"]]
            fields = {k: v for k, v in category_data.items() if k != "items"}
            db.add(MenuCategory(**fields, items=items))
            item_count += len(items)
        await db.commit()
        logger.info("Seeded %d categories, %d menu items", len(_MENU_SEED), item_count)


class AvailableMenu:
    """Categories paired with their available items, in display order.

    Iteration is lazy and can be repeated; categories with no available
    item are skipped.
    """

    def __init__(self, categories: list[MenuCategory], items: list[MenuItem]) -> None:
        self._categories = categories
        self._items = items

    def __iter__(self) -> Iterator[tuple[MenuCategory, list[MenuItem]]]:
        for category in self._categories:
            items = [item for item in self._items if item.category_id == category.id]
            if items:
                yield category, items

    def sections(self) -> list[MenuSection]:
        return [
            MenuSection(
                category=CategoryResponse.model_validate(category),
                items=[MenuItemResponse.model_validate(item) for item in items],
            )
            for category, items in self
        ]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse(schema: type[SchemaT], data: SchemaT | Mapping[str, Any]) -> SchemaT:
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        fields = {".".join(str(part) for part in err["loc"]) or "body" for err in exc.errors()}
        raise ValidationError(fields) from exc


async def _get_category(db: AsyncSession, category_id: uuid.UUID) -> MenuCategory:
    category = await db.get(MenuCategory, category_id)
    if category is None:
        raise NotFound("Menu category")
    return category


async def _get_item(db: AsyncSession, item_id: uuid.UUID) -> MenuItem:
    item = await db.get(MenuItem, item_id)
    if item is None:
        raise NotFound("Menu item")
    return item


async def _check_category_ref(db: AsyncSession, category_id: uuid.UUID) -> None:
    if await db.get(MenuCategory, category_id) is None:
        raise ValidationError(["category_id"], "Category does not exist")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def list_available(db: AsyncSession, caller: Caller) -> AvailableMenu:
    authorize(caller, Operation.BROWSE_MENU)
    categories = await db.execute(
        select(MenuCategory)
        .where(MenuCategory.is_active.is_(True))
        .order_by(MenuCategory.display_order, MenuCategory.name)
    )
    items = await db.execute(
        select(MenuItem).where(MenuItem.is_available.is_(True)).order_by(MenuItem.name)
    )
    return AvailableMenu(list(categories.scalars().all()), list(items.scalars().all()))


async def get_item(db: AsyncSession, caller: Caller, item_id: uuid.UUID) -> MenuItemResponse:
    authorize(caller, Operation.BROWSE_MENU)
    return MenuItemResponse.model_validate(await _get_item(db, item_id))


async def get_orderable_item(db: AsyncSession, caller: Caller, item_id: uuid.UUID) -> MenuItemResponse:
    """An item a guest may put in a cart. Items of a retired category are unavailable."""
    authorize(caller, Operation.BROWSE_MENU)
    item = await _get_item(db, item_id)
    category = await db.get(MenuCategory, item.category_id)
    if category is None or not category.is_active:
        raise ItemUnavailable(item.name)
    return MenuItemResponse.model_validate(item)


async def list_categories(db: AsyncSession, caller: Caller) -> list[CategoryResponse]:
    authorize(caller, Operation.MANAGE_MENU)
    result = await db.execute(select(MenuCategory).order_by(MenuCategory.display_order, MenuCategory.name))
    return [CategoryResponse.model_validate(c) for c in result.scalars().all()]


async def list_items(db: AsyncSession, caller: Caller) -> list[MenuItemResponse]:
    """Every item, available or not, for administration screens."""
    authorize(caller, Operation.MANAGE_MENU)
    result = await db.execute(select(MenuItem).order_by(MenuItem.name))
    return [MenuItemResponse.model_validate(i) for i in result.scalars().all()]


async def add_category(
    db: AsyncSession, caller: Caller, data: CategoryCreate | Mapping[str, Any]
) -> CategoryResponse:
    authorize(caller, Operation.MANAGE_MENU)
    payload = _parse(CategoryCreate, data)

    category = MenuCategory(**payload.model_dump())
    db.add(category)
    await db.commit()

    logger.info("Menu category created", extra={"category_id": str(category.id), "category_name": category.name})
    return CategoryResponse.model_validate(category)


async def update_category(
    db: AsyncSession, caller: Caller, category_id: uuid.UUID, data: CategoryUpdate | Mapping[str, Any]
) -> CategoryResponse:
    """Partial edit; `is_active=False` is how a category is retired."""
    authorize(caller, Operation.MANAGE_MENU)
    payload = _parse(CategoryUpdate, data)
    category = await _get_category(db, category_id)

    changes = payload.model_dump(exclude_unset=True)
    missing = [k for k, v in changes.items() if v is None and k != "description"]
    if missing:
        raise ValidationError(missing)

    for key, value in changes.items():
        setattr(category, key, value)
    await db.commit()

    logger.info("Menu category updated", extra={"category_id": str(category.id), "active": category.is_active})
    return CategoryResponse.model_validate(category)


async def add_item(
    db: AsyncSession, caller: Caller, data: MenuItemCreate | Mapping[str, Any]
) -> MenuItemResponse:
    authorize(caller, Operation.MANAGE_MENU)
    payload = _parse(MenuItemCreate, data)
    await _check_category_ref(db, payload.category_id)

    item = MenuItem(**payload.model_dump())
    db.add(item)
    await db.commit()

    logger.info(
        "Menu item created",
        extra={"item_id": str(item.id), "item_name": item.name, "price": str(item.price)},
    )
    return MenuItemResponse.model_validate(item)


async def update_item(
    db: AsyncSession, caller: Caller, item_id: uuid.UUID, data: MenuItemUpdate | Mapping[str, Any]
) -> MenuItemResponse:
    authorize(caller, Operation.MANAGE_MENU)
    payload = _parse(MenuItemUpdate, data)
    item = await _get_item(db, item_id)

    changes = payload.model_dump(exclude_unset=True)
    missing = [k for k, v in changes.items() if v is None and k != "description"]
    if missing:
        raise ValidationError(missing)
    if "category_id" in changes:
        await _check_category_ref(db, changes["category_id"])

    for key, value in changes.items():
        setattr(item, key, value)
    await db.commit()

    logger.info("Menu item updated", extra={"item_id": str(item.id), "fields": sorted(changes)})
    return MenuItemResponse.model_validate(item)


async def set_item_availability(
    db: AsyncSession, caller: Caller, item_id: uuid.UUID, is_available: bool
) -> MenuItemResponse:
    authorize(caller, Operation.MANAGE_MENU)
    item = await _get_item(db, item_id)
    item.is_available = is_available
    await db.commit()

    logger.info("Menu item availability changed", extra={"item_id": str(item.id), "available": is_available})
    return MenuItemResponse.model_validate(item)
