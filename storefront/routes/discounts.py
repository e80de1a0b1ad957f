"""
Public Discount Validation

GET /api/discounts/validate?code=&subtotal= lets the cart preview a coupon
before checkout. Responses use {"valid": bool, ...} instead of the usual
{"error": ...} so the cart can show the message as-is.

Free shipping is reported with discountAmount 0; the cart removes the
shipping cost itself. Checkout re-validates the code server-side.
"""

import math

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.database import get_db
from storefront.services import discounts
from storefront.utils.text import format_mxn

router = APIRouter(prefix="/api/discounts", tags=["discounts"])

REJECTION_MESSAGES = {
    discounts.INACTIVE: "Este código de descuento ya no está activo.",
    discounts.NOT_STARTED: "Este código de descuento aún no está vigente.",
    discounts.EXPIRED: "Este código de descuento ha expirado.",
    discounts.EXHAUSTED: "Este código de descuento ha alcanzado su límite de usos.",
}


def _invalid(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"valid": False, "message": message})


def _describe(discount_type: str, value: float) -> str:
    if discount_type == "PERCENTAGE":
        return f"{format_mxn(value)}% de descuento"
    if discount_type == "FIXED":
        return f"${format_mxn(value)} de descuento"
    return "Envío gratis"


@router.get("/validate")
async def validate_discount(
    code: str | None = None,
    subtotal: str | None = None,
    db: AsyncSession = Depends(get_db)
):
    if not code:
        return _invalid(400, "El código de descuento es requerido.")

    try:
        amount = float(subtotal) if subtotal else 0.0
    except ValueError:
        amount = 0.0
    if not math.isfinite(amount) or amount <= 0:
        return _invalid(400, "El subtotal debe ser un número positivo.")

    discount = await discounts.find_discount_by_code(db, code)
    if not discount:
        return _invalid(404, "El código de descuento no existe.")

    reason = discounts.check_discount(discount, amount)
    if reason == discounts.BELOW_MINIMUM:
        minimum = format_mxn(discounts.minimum_purchase(discount))
        return _invalid(400, f"El pedido mínimo para este código es de ${minimum} MXN.")
    if reason:
        return _invalid(400, REJECTION_MESSAGES[reason])

    value = float(discount.value or 0)
    return {
        "valid": True,
        "discount": {
            "code": discount.code,
            "type": discount.type,
            "value": value,
            "discountAmount": discounts.discount_amount(discount, amount, shipping_cost=0),
            "description": _describe(discount.type, value),
        },
    }
