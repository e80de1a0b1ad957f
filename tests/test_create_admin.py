from scripts.create_admin import ensure_admin
from storefront.models import User
from storefront.services.auth import verify_password


async def test_creates_admin(session_factory):
    async with session_factory() as db:
        user, created = await ensure_admin(db, " Admin@Example.com ", "Admin123!")

    assert created is True
    assert user.email == "admin@example.com"
    assert user.role == "ADMIN"
    assert (user.first_name, user.last_name) == ("Admin", "Principal")
    assert verify_password("Admin123!", user.password_hash)


async def test_promotes_customer_and_resets_password(add, session_factory):
    await add(User(email="cliente@example.com", first_name="Carla"))

    async with session_factory() as db:
        user, created = await ensure_admin(db, "cliente@example.com", "NuevaClave1")

    assert created is False
    assert user.role == "ADMIN"
    assert user.first_name == "Carla"
    assert verify_password("NuevaClave1", user.password_hash)


async def test_keeps_super_admin_role(add, session_factory):
    await add(User(email="root@example.com", role="SUPER_ADMIN"))

    async with session_factory() as db:
        user, _ = await ensure_admin(db, "root@example.com", "Root12345")

    assert user.role == "SUPER_ADMIN"
