"""
Admin Discount Routes

CRUD for coupon codes:
- GET    /api/admin/discounts       newest first
- POST   /api/admin/discounts       create
- GET    /api/admin/discounts/{id}  detail
- PUT    /api/admin/discounts/{id}  partial update
- DELETE /api/admin/discounts/{id}  delete

Codes are stored upper-case and must be unique. value is required and
positive for PERCENTAGE and FIXED, and a percentage may not exceed 100.
"""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.database import get_db
from storefront.dependencies import require_admin
from storefront.models import DISCOUNT_TYPES, Discount
from storefront.services.serializers import discount_to_dict
from storefront.utils.validators import parse_id, sanitize_string


router = APIRouter(prefix="/api/admin/discounts", tags=["admin"], dependencies=[Depends(require_admin)])

INVALID_TYPE = f"Tipo de descuento inválido. Valores permitidos: {', '.join(DISCOUNT_TYPES)}"


class DiscountPayload(BaseModel):
    code: str | None = None
    type: str | None = None
    value: Any = None
    minPurchase: Any = None
    maxUses: Any = None
    startDate: str | None = None
    endDate: str | None = None
    active: bool | None = None


def _to_number(value) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_datetime(value) -> datetime | None:
    """
    Parse an ISO date or datetime from the admin form.

    Aware values are converted to naive UTC, the form stored in the database.
    """
    if not value:
        return None
    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail="Fecha inválida")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(status_code=400, detail="Fecha inválida")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _check_value(discount_type: str, value: float | None):
    if discount_type != "FREE_SHIPPING" and (value is None or value <= 0):
        raise HTTPException(status_code=400, detail="El valor del descuento es requerido y debe ser positivo")
    if discount_type == "PERCENTAGE" and value > 100:
        raise HTTPException(status_code=400, detail="El porcentaje de descuento no puede ser mayor a 100")


def _discount_id(raw: str) -> int:
    discount_id = parse_id(raw)
    if discount_id is None:
        raise HTTPException(status_code=400, detail="ID de descuento inválido")
    return discount_id


async def _find_by(db: AsyncSession, **filters) -> Discount | None:
    result = await db.execute(select(Discount).filter_by(**filters))
    return result.scalars().first()


@router.get("")
async def list_discounts(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Discount).order_by(Discount.created_at.desc(), Discount.id.desc()))
    return [discount_to_dict(d) for d in result.scalars().all()]


@router.post("", status_code=201)
async def create_discount(payload: DiscountPayload, db: AsyncSession = Depends(get_db)):
    code = sanitize_string(payload.code).upper()
    if not code:
        raise HTTPException(status_code=400, detail="El código de descuento es requerido")

    if payload.type not in DISCOUNT_TYPES:
        raise HTTPException(status_code=400, detail=INVALID_TYPE)

    value = _to_number(payload.value)
    _check_value(payload.type, value)

    if await _find_by(db, code=code):
        raise HTTPException(status_code=400, detail="Ya existe un descuento con ese código")

    discount = Discount(
        code=code,
        type=payload.type,
        value=value,
        min_purchase=_to_number(payload.minPurchase),
        max_uses=parse_id(payload.maxUses) if payload.maxUses else None,
        start_date=_to_datetime(payload.startDate),
        end_date=_to_datetime(payload.endDate),
        active=bool(payload.active) if payload.active is not None else True,
    )
    db.add(discount)
    await db.commit()
    await db.refresh(discount)

    return discount_to_dict(discount)


@router.get("/{discount_id}")
async def get_discount(discount_id: str, db: AsyncSession = Depends(get_db)):
    discount = await _find_by(db, id=_discount_id(discount_id))
    if not discount:
        raise HTTPException(status_code=404, detail="Descuento no encontrado")
    return discount_to_dict(discount)


@router.put("/{discount_id}")
async def update_discount(discount_id: str, payload: DiscountPayload, db: AsyncSession = Depends(get_db)):
    """
    Partial update; only fields present in the body are touched.

    The value rules are checked against the resulting type and value, so
    switching a FIXED 200 discount to PERCENTAGE without a new value is
    rejected.
    """
    existing = await _find_by(db, id=_discount_id(discount_id))
    if not existing:
        raise HTTPException(status_code=404, detail="Descuento no encontrado")

    fields = payload.model_fields_set
    updates = {}

    if "code" in fields:
        code = sanitize_string(payload.code).upper()
        if not code:
            raise HTTPException(status_code=400, detail="El código de descuento es requerido")
        if code != existing.code and await _find_by(db, code=code):
            raise HTTPException(status_code=400, detail="Ya existe un descuento con ese código")
        updates["code"] = code

    if "type" in fields:
        if payload.type not in DISCOUNT_TYPES:
            raise HTTPException(status_code=400, detail=INVALID_TYPE)
        updates["type"] = payload.type

    if "value" in fields:
        updates["value"] = _to_number(payload.value)

    if "type" in fields or "value" in fields:
        value = updates["value"] if "value" in updates else _to_number(existing.value)
        _check_value(updates.get("type", existing.type), value)

    if "minPurchase" in fields:
        updates["min_purchase"] = _to_number(payload.minPurchase)
    if "maxUses" in fields:
        updates["max_uses"] = parse_id(payload.maxUses) if payload.maxUses else None
    if "startDate" in fields:
        updates["start_date"] = _to_datetime(payload.startDate)
    if "endDate" in fields:
        updates["end_date"] = _to_datetime(payload.endDate)
    if "active" in fields:
        updates["active"] = bool(payload.active)

    for field, value in updates.items():
        setattr(existing, field, value)
    await db.commit()
    await db.refresh(existing)

    return discount_to_dict(existing)


@router.delete("/{discount_id}")
async def delete_discount(discount_id: str, db: AsyncSession = Depends(get_db)):
    existing = await _find_by(db, id=_discount_id(discount_id))
    if not existing:
        raise HTTPException(status_code=404, detail="Descuento no encontrado")

    await db.delete(existing)
    await db.commit()

    return {"message": "Descuento eliminado correctamente"}
