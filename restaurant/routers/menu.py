import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant.auth import get_caller, require
from restaurant.database import get_db
from restaurant.schemas.menu import (
    AvailabilityUpdate,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MenuSection,
)
from restaurant.services import menu_service
from restaurant.services.access_policy import Caller, Operation

router = APIRouter()

# Catalog edits are authorized before the body is validated
editor = require(Operation.MANAGE_MENU)


@router.get("", response_model=list[MenuSection])
async def browse_menu(
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
) -> list[MenuSection]:
    menu = await menu_service.list_available(db, caller)
    return menu.sections()


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    caller: Caller = Depends(editor),
    db: AsyncSession = Depends(get_db),
) -> list[CategoryResponse]:
    return await menu_service.list_categories(db, caller)


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def add_category(
    body: CategoryCreate,
    caller: Caller = Depends(editor),
    db: AsyncSession = Depends(get_db),
) -> CategoryResponse:
    return await menu_service.add_category(db, caller, body)


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: uuid.UUID,
    body: CategoryUpdate,
    caller: Caller = Depends(editor),
    db: AsyncSession = Depends(get_db),
) -> CategoryResponse:
    return await menu_service.update_category(db, caller, category_id, body)


@router.get("/items", response_model=list[MenuItemResponse])
async def list_items(
    caller: Caller = Depends(editor),
    db: AsyncSession = Depends(get_db),
) -> list[MenuItemResponse]:
    return await menu_service.list_items(db, caller)


@router.post("/items", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
async def add_item(
    body: MenuItemCreate,
    caller: Caller = Depends(editor),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    return await menu_service.add_item(db, caller, body)


@router.get("/items/{item_id}", response_model=MenuItemResponse)
async def get_item(
    item_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    return await menu_service.get_item(db, caller, item_id)


@router.patch("/items/{item_id}", response_model=MenuItemResponse)
async def update_item(
    item_id: uuid.UUID,
    body: MenuItemUpdate,
    caller: Caller = Depends(editor),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    return await menu_service.update_item(db, caller, item_id, body)


@router.put("/items/{item_id}/availability", response_model=MenuItemResponse)
async def set_availability(
    item_id: uuid.UUID,
    body: AvailabilityUpdate,
    caller: Caller = Depends(editor),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    return await menu_service.set_item_availability(db, caller, item_id, body.is_available)
