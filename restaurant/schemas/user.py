import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, EmailStr, StringConstraints

from restaurant.models.user import Role

PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]


class ProfileUpdate(BaseModel):
    first_name: PersonName
    last_name: PersonName
    email: EmailStr
    phone: str | None = None


class RoleUpdate(BaseModel):
    role: Role


class UserProfileResponse(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone: str | None
    role: Role
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
