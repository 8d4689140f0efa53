import logging
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant.exceptions import NotFound, ValidationError
from restaurant.models.user import Role, UserProfile
from restaurant.schemas.user import ProfileUpdate, UserProfileResponse
from restaurant.services.access_policy import Caller, Operation, authorize, parse_role

logger = logging.getLogger(__name__)


async def get_profile(db: AsyncSession, caller: Caller, user_id: uuid.UUID) -> UserProfileResponse:
    # Anyone may read their own profile
    if user_id != caller.user_id:
        authorize(caller, Operation.MANAGE_USERS)
    profile = await db.get(UserProfile, user_id)
    if profile is None:
        raise NotFound("User profile")
    return UserProfileResponse.model_validate(profile)


async def list_profiles(db: AsyncSession, caller: Caller, role: Role | None = None) -> list[UserProfileResponse]:
    authorize(caller, Operation.MANAGE_USERS)
    stmt = select(UserProfile).order_by(UserProfile.created_at.desc())
    if role is not None:
        stmt = stmt.where(UserProfile.role == role)
    result = await db.execute(stmt)
    return [UserProfileResponse.model_validate(p) for p in result.scalars().all()]


async def register_profile(db: AsyncSession, caller: Caller, data: ProfileUpdate) -> UserProfileResponse:
    """Create or edit the caller's own profile. New profiles always start as clients."""
    clash = await db.execute(
        select(UserProfile.id).where(UserProfile.email == str(data.email), UserProfile.id != caller.user_id)
    )
    if clash.first() is not None:
        raise ValidationError(["email"], "Email already registered")

    profile = await db.get(UserProfile, caller.user_id)
    created = profile is None
    if created:
        profile = UserProfile(id=caller.user_id, role=Role.CLIENT)
        db.add(profile)

    profile.first_name = data.first_name
    profile.last_name = data.last_name
    profile.email = str(data.email)
    profile.phone = data.phone
    profile.updated_at = datetime.utcnow()
    await db.commit()

    logger.info("User profile saved", extra={"user_id": str(profile.id), "created": created})
    return UserProfileResponse.model_validate(profile)


async def update_role(db: AsyncSession, caller: Caller, user_id: uuid.UUID, role: Role | str) -> UserProfileResponse:
    authorize(caller, Operation.MANAGE_USERS)
    if not isinstance(role, Role):
        role = parse_role(role)

    profile = await db.get(UserProfile, user_id)
    if profile is None:
        raise NotFound("User profile")

    previous = profile.role
    profile.role = role
    profile.updated_at = datetime.utcnow()
    await db.commit()

    logger.info(
        "User role changed",
        extra={"user_id": str(user_id), "from_role": previous.value, "to_role": role.value, "by": str(caller.user_id)},
    )
    return UserProfileResponse.model_validate(profile)
