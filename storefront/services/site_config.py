"""
Site Configuration Accessor

Reads key/value site settings edited from the admin console. Each key
resolves to the stored value if present, else a built-in default, else
an empty string. There is no cache: every call queries the database.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.models import SiteConfig


DEFAULTS = {
    "whatsapp_number": "5215519915154",
    "shipping_cost": "150",
    "free_shipping_threshold": "999",
    "store_name": "Las Delicias del Campo",
}

# Keys the public /api/config endpoint is allowed to expose
PUBLIC_KEYS = ("whatsapp_number", "shipping_cost", "free_shipping_threshold", "store_name")


async def get_config(db: AsyncSession, key: str) -> str:
    result = await db.execute(select(SiteConfig).filter(SiteConfig.key == key))
    config = result.scalars().first()
    if config is not None:
        return config.value
    return DEFAULTS.get(key, "")


async def get_configs(db: AsyncSession, keys: list[str]) -> dict[str, str]:
    """
    Resolve several keys with a single query.

    Returns:
        Dict with one entry per requested key, in request order
    """
    result = await db.execute(select(SiteConfig).filter(SiteConfig.key.in_(keys)))
    stored = {c.key: c.value for c in result.scalars().all()}
    return {key: stored.get(key, DEFAULTS.get(key, "")) for key in keys}
