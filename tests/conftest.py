"""
Shared test fixtures.

Settings are read at import time, so the environment is prepared before
anything from storefront is imported. Each test gets a fresh in-memory
SQLite database wired into the app through a get_db override.
"""

import os

os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "development"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RESEND_API_KEY"] = ""
os.environ["MP_ACCESS_TOKEN"] = "TEST-access-token"
os.environ["SITE_URL"] = "https://tienda.test"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.database import get_db
from storefront.limiter import ALL_LIMITERS
from storefront.main import app
from storefront.models import Base, Category, Product, ProductImage, ProductVariant, User
from storefront.services.auth import (
    ADMIN_COOKIE,
    CUSTOMER_COOKIE,
    create_admin_session,
    create_customer_session,
    hash_password,
)


@pytest.fixture(autouse=True)
def reset_limiters():
    for limiter in ALL_LIMITERS:
        limiter.reset()
    yield
    for limiter in ALL_LIMITERS:
        limiter.reset()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def add(session_factory):
    """
    Persist objects in their own session and return them.

    Example:
        user = await add(User(email="a@example.com"))
    """
    async def _add(*objects):
        async with session_factory() as session:
            session.add_all(objects)
            await session.commit()
        return objects[0] if len(objects) == 1 else objects

    return _add


@pytest.fixture
async def admin_user(add):
    return await add(User(
        email="admin@example.com",
        password_hash=hash_password("Admin123!"),
        first_name="Ana",
        last_name="Admin",
        role="ADMIN",
    ))


@pytest.fixture
async def admin_client(client, admin_user):
    client.cookies.set(ADMIN_COOKIE, create_admin_session(admin_user.id, admin_user.email, admin_user.role))
    return client


@pytest.fixture
async def super_admin(add):
    return await add(User(email="root@example.com", role="SUPER_ADMIN"))


@pytest.fixture
async def super_admin_client(client, super_admin):
    client.cookies.set(ADMIN_COOKIE, create_admin_session(super_admin.id, super_admin.email, super_admin.role))
    return client


@pytest.fixture
async def customer_user(add):
    return await add(User(
        email="cliente@example.com",
        password_hash=hash_password("secreto123"),
        first_name="Carla",
        last_name="Cliente",
        phone="5512345678",
    ))


@pytest.fixture
async def customer_client(client, customer_user):
    client.cookies.set(CUSTOMER_COOKIE, create_customer_session(customer_user.id, customer_user.email))
    return client


@pytest.fixture
async def catalog(add):
    """
    Two categories and three products:
    - Nuez Pecana (ACTIVE, featured) with two variants and an image
    - Almendra (ACTIVE) with one variant
    - Pistache (DRAFT)
    """
    nueces = Category(name="Nueces", slug="nueces")
    semillas = Category(name="Semillas", slug="semillas")
    await add(nueces, semillas)

    pecana = Product(
        name="Nuez Pecana",
        slug="nuez-pecana",
        description="Nuez pecana de Chihuahua",
        category_id=nueces.id,
        featured=True,
        variants=[
            ProductVariant(name="1 kg", price=420, stock=10, position=1),
            ProductVariant(name="250 g", price=120, stock=25, position=0),
        ],
        images=[ProductImage(url="https://img.test/pecana.jpg", alt="Nuez pecana", position=0)],
    )
    almendra = Product(
        name="Almendra",
        slug="almendra",
        description="Almendra natural",
        category_id=nueces.id,
        variants=[ProductVariant(name="500 g", price=180, stock=5, position=0)],
    )
    pistache = Product(
        name="Pistache",
        slug="pistache",
        status="DRAFT",
        category_id=semillas.id,
        variants=[ProductVariant(name="500 g", price=300, stock=0, position=0)],
    )
    await add(pecana, almendra, pistache)

    return {
        "nueces": nueces,
        "semillas": semillas,
        "pecana": pecana,
        "almendra": almendra,
        "pistache": pistache,
    }
