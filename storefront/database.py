"""
Database Engine and Sessions

One async engine per process and a session factory bound to it. Route
handlers receive a session through the get_db dependency; scripts open
one directly from AsyncSessionLocal.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from storefront.config import settings


# Async engine
# - Uses asyncpg in production (specified in DATABASE_URL), aiosqlite in tests
engine = create_async_engine(settings.DATABASE_URL, echo=False)


# Session factory
# - expire_on_commit=False: objects stay readable after commit, which
#   matters because async sessions cannot lazily refresh attributes
AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_db():
    """
    Yield one session per request, closed when the request ends.

    Example:
        @router.get("/endpoint")
        async def route(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Product))
    """
    async with AsyncSessionLocal() as session:
        yield session
