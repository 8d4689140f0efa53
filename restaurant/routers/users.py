import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant.auth import get_caller, require
from restaurant.database import get_db
from restaurant.models.user import Role
from restaurant.schemas.user import ProfileUpdate, RoleUpdate, UserProfileResponse
from restaurant.services import user_service
from restaurant.services.access_policy import Caller, Operation

router = APIRouter()


@router.get("", response_model=list[UserProfileResponse])
async def list_users(
    role: Role | None = None,
    caller: Caller = Depends(require(Operation.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
) -> list[UserProfileResponse]:
    return await user_service.list_profiles(db, caller, role=role)


@router.get("/me", response_model=UserProfileResponse)
async def get_me(
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
) -> UserProfileResponse:
    return await user_service.get_profile(db, caller, caller.user_id)


@router.put("/me", response_model=UserProfileResponse)
async def register_me(
    body: ProfileUpdate,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
) -> UserProfileResponse:
    return await user_service.register_profile(db, caller, body)


@router.get("/{user_id}", response_model=UserProfileResponse)
async def get_user(
    user_id: uuid.UUID,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
) -> UserProfileResponse:
    return await user_service.get_profile(db, caller, user_id)


@router.put("/{user_id}/role", response_model=UserProfileResponse)
async def update_role(
    user_id: uuid.UUID,
    body: RoleUpdate,
    caller: Caller = Depends(require(Operation.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
) -> UserProfileResponse:
    return await user_service.update_role(db, caller, user_id, body.role)
