import uuid
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints, field_validator

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Price = Annotated[Decimal, Field(ge=0, max_digits=10, decimal_places=2)]


def _normalise_allergens(value: list[str] | None) -> list[str] | None:
    if value is None:
        return None
    return sorted({label.strip().lower() for label in value if label.strip()})


class CategoryCreate(BaseModel):
    name: Name
    description: str | None = None
    display_order: int = 0


class CategoryUpdate(BaseModel):
    name: Name | None = None
    description: str | None = None
    display_order: int | None = None
    is_active: bool | None = None


class CategoryResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    display_order: int
    is_active: bool

    model_config = {"from_attributes": True}


class MenuItemCreate(BaseModel):
    name: Name
    description: str | None = None
    price: Price
    category_id: uuid.UUID
    preparation_time: int = Field(default=15, ge=0)
    is_available: bool = True
    allergens: list[str] = Field(default_factory=list)

    @field_validator("allergens")
    @classmethod
    def normalise_allergens(cls, value):
        return _normalise_allergens(value)


class MenuItemUpdate(BaseModel):
    name: Name | None = None
    description: str | None = None
    price: Price | None = None
    category_id: uuid.UUID | None = None
    preparation_time: int | None = Field(default=None, ge=0)
    allergens: list[str] | None = None

    @field_validator("allergens")
    @classmethod
    def normalise_allergens(cls, value):
        return _normalise_allergens(value)


class AvailabilityUpdate(BaseModel):
    is_available: bool


class MenuItemResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    price: Decimal
    category_id: uuid.UUID
    preparation_time: int
    is_available: bool
    allergens: list[str]

    model_config = {"from_attributes": True}


class MenuSection(BaseModel):
    category: CategoryResponse
    items: list[MenuItemResponse]
