"""
Admin Order Routes

- GET /api/admin/orders       all orders, newest first
- GET /api/admin/orders/{id}  detail with user, items and shipping address
- PUT /api/admin/orders/{id}  change status and/or paymentStatus

Cancelling an order that was already paid puts its quantities back into
variant stock. The status change is kept even if restoring stock fails;
that failure is only logged.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from storefront.database import get_db
from storefront.dependencies import require_admin
from storefront.models import ORDER_STATUSES, PAYMENT_STATUSES, Order, ProductVariant
from storefront.services.orders import load_order
from storefront.services.serializers import order_summary, order_to_dict
from storefront.utils.validators import parse_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/orders", tags=["admin"], dependencies=[Depends(require_admin)])


class OrderUpdate(BaseModel):
    status: str | None = None
    paymentStatus: str | None = None


def _order_id(raw: str) -> int:
    order_id = parse_id(raw)
    if order_id is None:
        raise HTTPException(status_code=400, detail="ID de orden inválido")
    return order_id


async def _restore_stock(db: AsyncSession, order: Order):
    """Return each item's quantity to its variant and mark it in stock."""
    try:
        for item in order.items:
            if item.variant_id is None:
                continue
            await db.execute(
                update(ProductVariant)
                .where(ProductVariant.id == item.variant_id)
                .values(stock=ProductVariant.stock + item.quantity, in_stock=True)
            )
        await db.commit()
        logger.info(f"Inventario restaurado para orden {order.id}")
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(f"Error al restaurar inventario para orden {order.id}")


@router.get("")
async def list_orders(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Order)
        .options(selectinload(Order.user), selectinload(Order.items))
        .order_by(Order.created_at.desc(), Order.id.desc())
    )

    orders = []
    for order in result.scalars().all():
        data = order_summary(order)
        data["user"] = {
            "firstName": order.user.first_name,
            "lastName": order.user.last_name,
            "email": order.user.email,
        } if order.user else None
        data["itemCount"] = len(order.items)
        orders.append(data)
    return orders


@router.get("/{order_id}")
async def get_order(order_id: str, db: AsyncSession = Depends(get_db)):
    order = await load_order(db, id=_order_id(order_id))
    if not order:
        raise HTTPException(status_code=404, detail="Orden no encontrada")
    return order_to_dict(order)


@router.put("/{order_id}")
async def update_order(order_id: str, payload: OrderUpdate, db: AsyncSession = Depends(get_db)):
    order_id = _order_id(order_id)
    order = await load_order(db, id=order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Orden no encontrada")

    fields = payload.model_fields_set
    updates = {}

    if "status" in fields:
        if payload.status not in ORDER_STATUSES:
            raise HTTPException(
                status_code=400,
                detail=f"Estado de orden inválido. Valores permitidos: {', '.join(ORDER_STATUSES)}"
            )
        updates["status"] = payload.status

    if "paymentStatus" in fields:
        if payload.paymentStatus not in PAYMENT_STATUSES:
            raise HTTPException(
                status_code=400,
                detail=f"Estado de pago inválido. Valores permitidos: {', '.join(PAYMENT_STATUSES)}"
            )
        updates["payment_status"] = payload.paymentStatus

    if not updates:
        raise HTTPException(status_code=400, detail="No se proporcionaron campos para actualizar")

    # Decided on the state before this update
    restore = (
        updates.get("status") == "CANCELLED"
        and order.status != "CANCELLED"
        and order.payment_status == "PAID"
    )

    for field, value in updates.items():
        setattr(order, field, value)
    await db.commit()

    if restore:
        await _restore_stock(db, order)

    return order_to_dict(await load_order(db, id=order_id))
