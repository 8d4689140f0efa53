import os

# Must be set before anything imports restaurant.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SEED_MENU"] = "false"
os.environ.pop("OTLP_ENDPOINT", None)

import uuid
from decimal import Decimal

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from restaurant.database import Base, get_db
from restaurant.models import MenuCategory, MenuItem, Role, UserProfile
from restaurant.services.access_policy import Caller
from restaurant.services.cart import Cart, CartRegistry


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'restaurant.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


def _profile(role: Role, first_name: str, last_name: str) -> UserProfile:
    return UserProfile(
        id=uuid.uuid4(),
        first_name=first_name,
        last_name=last_name,
        email=f"{first_name.lower()}@example.com",
        role=role,
    )


@pytest.fixture
async def users(session_factory):
    profiles = {
        "admin": _profile(Role.ADMIN, "Alice", "Martin"),
        "server": _profile(Role.SERVER, "Sam", "Durand"),
        "client": _profile(Role.CLIENT, "Chloe", "Bernard"),
        "other_client": _profile(Role.CLIENT, "Oscar", "Petit"),
    }
    async with session_factory() as session:
        session.add_all(profiles.values())
        await session.commit()
    return profiles


@pytest.fixture
def admin(users) -> Caller:
    return Caller(user_id=users["admin"].id, role=Role.ADMIN)


@pytest.fixture
def server(users) -> Caller:
    return Caller(user_id=users["server"].id, role=Role.SERVER)


@pytest.fixture
def client_caller(users) -> Caller:
    return Caller(user_id=users["client"].id, role=Role.CLIENT)


@pytest.fixture
def other_client(users) -> Caller:
    return Caller(user_id=users["other_client"].id, role=Role.CLIENT)


@pytest.fixture
async def menu(session_factory):
    """Desserts only holds an unavailable item and Specials is retired."""
    pizzas = MenuCategory(name="Pizzas", display_order=1)
    drinks = MenuCategory(name="Drinks", display_order=2)
    desserts = MenuCategory(name="Desserts", display_order=0)
    retired = MenuCategory(name="Specials", display_order=3, is_active=False)
    items = {
        "margherita": MenuItem(name="Margherita Pizza", price=Decimal("9.50"), category=pizzas,
                               allergens=["gluten", "milk"]),
        "calzone": MenuItem(name="Calzone", price=Decimal("12.00"), category=pizzas),
        "soda": MenuItem(name="Soda", price=Decimal("2.00"), category=drinks, preparation_time=0),
        "tiramisu": MenuItem(name="Tiramisu", price=Decimal("6.50"), category=desserts, is_available=False),
        "special": MenuItem(name="Truffle Pizza", price=Decimal("19.00"), category=retired),
    }
    async with session_factory() as session:
        session.add_all([pizzas, drinks, desserts, retired, *items.values()])
        await session.commit()
    return {"pizzas": pizzas, "drinks": drinks, "desserts": desserts, "retired": retired, **items}


@pytest.fixture
def cart(client_caller) -> Cart:
    return Cart(customer_id=client_caller.user_id)


@pytest.fixture
def app(session_factory):
    from restaurant.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.carts = CartRegistry()
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def http(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def identity():
    """Headers the authentication gateway would forward for a caller."""

    def headers(caller: Caller) -> dict[str, str]:
        return {"X-User-ID": str(caller.user_id), "X-User-Role": caller.role.value}

    return headers
