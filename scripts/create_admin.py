"""
Create Admin User Script

Creates an admin console user, or promotes an existing user to ADMIN and
resets its password. Run it once after the first deploy to be able to
log in at /api/admin/login.

Usage:
    python scripts/create_admin.py EMAIL PASSWORD

An existing SUPER_ADMIN keeps its role; only the password is reset.
"""

import asyncio
import os
import sys

# Add parent directory to Python path so we can import storefront modules
# This allows running the script from any directory
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.database import AsyncSessionLocal, engine
from storefront.models import ADMIN_ROLES, Base, User
from storefront.services.auth import hash_password


async def ensure_admin(db: AsyncSession, email: str, password: str) -> tuple[User, bool]:
    """
    Create or update the admin user.

    Returns:
        (user, created) where created is False when the email already existed
    """
    email = email.strip().lower()
    result = await db.execute(select(User).filter(User.email == email))
    user = result.scalars().first()

    created = user is None
    if created:
        user = User(email=email, first_name="Admin", last_name="Principal", role="ADMIN")
        db.add(user)
    elif user.role not in ADMIN_ROLES:
        user.role = "ADMIN"

    user.password_hash = hash_password(password)
    await db.commit()
    await db.refresh(user)
    return user, created


async def main(email: str, password: str):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        user, created = await ensure_admin(db, email, password)

    if created:
        print(f"Admin user {user.email} created")
    else:
        print(f"User {user.email} already existed; role is {user.role}, password updated")

    await engine.dispose()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(1)
    asyncio.run(main(sys.argv[1], sys.argv[2]))
