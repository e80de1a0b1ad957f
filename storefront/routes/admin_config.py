"""
Admin Site Configuration Routes

- GET /api/admin/config  every stored setting, ordered by key
- PUT /api/admin/config  upsert a batch: {"configs": [{"key", "value", "type"?}]}

Items without a key or value are skipped. Values are stored as strings.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.database import get_db
from storefront.dependencies import require_admin
from storefront.models import SiteConfig
from storefront.services.serializers import config_to_dict
from storefront.utils.validators import sanitize_string


router = APIRouter(prefix="/api/admin/config", tags=["admin"], dependencies=[Depends(require_admin)])


class ConfigBatch(BaseModel):
    configs: Any = None


def _as_text(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@router.get("")
async def list_config(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(SiteConfig).order_by(SiteConfig.key))
    return [config_to_dict(c) for c in result.scalars().all()]


@router.put("")
async def update_config(payload: ConfigBatch, db: AsyncSession = Depends(get_db)):
    """
    Upsert settings one by one.

    An existing key keeps its type; only new keys take the given type
    (default "text").

    Returns:
        The stored rows, in request order
    """
    if not isinstance(payload.configs, list):
        raise HTTPException(status_code=400, detail="Se requiere un array de configuraciones")

    saved = []
    for item in payload.configs:
        if not isinstance(item, dict) or not item.get("key") or item.get("value") is None:
            continue

        key = sanitize_string(item["key"])
        value = sanitize_string(_as_text(item["value"]))

        result = await db.execute(select(SiteConfig).filter(SiteConfig.key == key))
        config = result.scalars().first()
        if config:
            config.value = value
        else:
            config = SiteConfig(key=key, value=value, type=item.get("type") or "text")
            db.add(config)
        await db.flush()
        saved.append(config)

    await db.commit()
    return [config_to_dict(c) for c in saved]
