import uuid

import pytest

from restaurant.exceptions import Forbidden, NotFound, ValidationError
from restaurant.models.user import Role
from restaurant.schemas.user import ProfileUpdate
from restaurant.services import user_service
from restaurant.services.access_policy import Caller


async def test_new_profile_starts_as_client(db, users):
    caller = Caller(user_id=uuid.uuid4(), role=Role.CLIENT)
    profile = await user_service.register_profile(
        db, caller, ProfileUpdate(first_name="Nora", last_name="Lambert", email="nora@example.com")
    )

    assert profile.id == caller.user_id
    assert profile.role == Role.CLIENT
    assert (await user_service.get_profile(db, caller, caller.user_id)).email == "nora@example.com"


async def test_register_rejects_taken_email(db, users, client_caller):
    with pytest.raises(ValidationError) as exc_info:
        await user_service.register_profile(
            db, client_caller, ProfileUpdate(first_name="Chloe", last_name="B", email="alice@example.com")
        )
    assert exc_info.value.fields == ["email"]


async def test_admin_changes_role(db, admin, client_caller):
    profile = await user_service.update_role(db, admin, client_caller.user_id, Role.SERVER)
    assert profile.role == Role.SERVER

    servers = await user_service.list_profiles(db, admin, role=Role.SERVER)
    assert {p.first_name for p in servers} == {"Sam", "Chloe"}


async def test_only_admin_manages_users(db, server, client_caller):
    with pytest.raises(Forbidden):
        await user_service.update_role(db, server, client_caller.user_id, Role.ADMIN)
    with pytest.raises(Forbidden):
        await user_service.update_role(db, client_caller, client_caller.user_id, Role.ADMIN)
    with pytest.raises(Forbidden):
        await user_service.list_profiles(db, server)
    with pytest.raises(Forbidden):
        await user_service.get_profile(db, client_caller, server.user_id)


async def test_unknown_role_rejected(db, admin, client_caller):
    with pytest.raises(ValidationError):
        await user_service.update_role(db, admin, client_caller.user_id, "manager")


async def test_role_change_for_missing_user(db, admin):
    with pytest.raises(NotFound):
        await user_service.update_role(db, admin, uuid.uuid4(), Role.CLIENT)
