"""
Checkout Routes

Two ways to place an order from the cart:
- POST /api/checkout/create-order       manual payment (WhatsApp or bank transfer)
- POST /api/checkout/create-preference  pay online through Mercado Pago

create-order trusts nothing from the cart: it re-validates every field,
recomputes the subtotal from the items, re-checks the discount code and
rejects the order when the client's total differs by more than one cent.

create-preference only checks that the cart is usable, stores a PENDING
order and hands the buyer over to the gateway. The payment webhook
updates the order later.

Both record the buyer by email, creating a passwordless customer when
needed.
"""

import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import settings
from storefront.database import get_db
from storefront.dependencies import get_customer_session
from storefront.models import Discount, Order
from storefront.services import discounts
from storefront.services import mercadopago as mp
from storefront.services.email import build_order_email_data, send_order_emails
from storefront.services.orders import (
    build_order_items,
    build_shipping_address,
    find_or_create_user,
    generate_order_number,
    item_display_name,
    load_order,
)
from storefront.utils.text import format_mxn
from storefront.utils.validators import (
    is_positive_integer,
    is_positive_number,
    is_valid_email,
    is_valid_phone,
    is_valid_zip_code,
    sanitize_string,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/checkout", tags=["checkout"])

# Client and server totals may differ by float rounding only
TOTAL_TOLERANCE = 0.01

DISCOUNT_ERRORS = {
    discounts.INACTIVE: "El código de descuento no es válido.",
    discounts.NOT_STARTED: "El código de descuento no está vigente.",
    discounts.EXPIRED: "El código de descuento no está vigente.",
    discounts.EXHAUSTED: "El código de descuento ha alcanzado su límite.",
}


class CheckoutRequest(BaseModel):
    items: list | None = None
    customer: dict | None = None
    shipping: dict | None = None
    notes: str | None = None
    subtotal: Any = None
    shippingCost: Any = None
    total: Any = None
    discountCode: str | None = None
    paymentMethod: str | None = None


def _section(value) -> dict:
    return value if isinstance(value, dict) else {}


def _shipping_cost(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _validation_errors(payload: CheckoutRequest) -> list[str]:
    """
    Collect every problem with a checkout body.

    All messages are returned together so the form can show them at once.
    """
    errors = []
    customer = _section(payload.customer)
    shipping = _section(payload.shipping)

    if not payload.items:
        errors.append("El carrito no puede estar vacío.")
    else:
        for i, item in enumerate(payload.items, start=1):
            item = _section(item)
            if not is_positive_number(item.get("price")):
                errors.append(f"El precio del producto #{i} debe ser un número positivo.")
            if not is_positive_integer(item.get("quantity")):
                errors.append(f"La cantidad del producto #{i} debe ser un número entero positivo.")
            if not is_positive_integer(item.get("variantId")):
                errors.append(f"El identificador de variante del producto #{i} es inválido.")

    if not is_valid_email(customer.get("email")):
        errors.append("El correo electrónico no es válido.")
    if not is_valid_phone(customer.get("phone")):
        errors.append("El número de teléfono no es válido.")
    if not sanitize_string(customer.get("firstName")):
        errors.append("El nombre es requerido.")
    if not sanitize_string(customer.get("lastName")):
        errors.append("El apellido es requerido.")
    if not sanitize_string(shipping.get("address")):
        errors.append("La dirección de envío es requerida.")
    if not sanitize_string(shipping.get("city")):
        errors.append("La ciudad es requerida.")
    if not is_valid_zip_code(shipping.get("zipCode")):
        errors.append("El código postal no es válido.")
    if not is_positive_number(payload.subtotal):
        errors.append("El subtotal debe ser un número positivo.")
    if not is_positive_number(payload.total):
        errors.append("El total debe ser un número positivo.")
    if _shipping_cost(payload.shippingCost) < 0:
        errors.append("El costo de envío no es válido.")

    return errors


def _clean_items(items: list) -> list[dict]:
    return [
        {
            "variantId": int(item["variantId"]),
            "productName": sanitize_string(item.get("productName")),
            "variantName": sanitize_string(item.get("variantName")),
            "price": float(item["price"]),
            "quantity": int(item["quantity"]),
        }
        for item in items
    ]


def _clean_customer(customer: dict) -> dict:
    return {
        "email": customer["email"].strip().lower(),
        "firstName": sanitize_string(customer.get("firstName")),
        "lastName": sanitize_string(customer.get("lastName")),
        "phone": sanitize_string(customer.get("phone")),
    }


def _clean_shipping(shipping: dict) -> dict:
    return {
        "address": sanitize_string(shipping.get("address")),
        "city": sanitize_string(shipping.get("city")),
        "state": sanitize_string(shipping.get("state")),
        "zipCode": sanitize_string(shipping.get("zipCode")),
    }


async def _apply_discount(db: AsyncSession, code: str, subtotal: float, shipping_cost: float) -> tuple[Discount, float]:
    """
    Re-validate a discount code at checkout time.

    Returns:
        (discount, amount to subtract)

    Raises:
        HTTPException: 400 with the reason the code cannot be used
    """
    discount = await discounts.find_discount_by_code(db, code)
    if not discount:
        raise HTTPException(status_code=400, detail=DISCOUNT_ERRORS[discounts.INACTIVE])

    reason = discounts.check_discount(discount, subtotal)
    if reason == discounts.BELOW_MINIMUM:
        minimum = format_mxn(discounts.minimum_purchase(discount))
        raise HTTPException(status_code=400, detail=f"El pedido mínimo para este código es de ${minimum} MXN.")
    if reason:
        raise HTTPException(status_code=400, detail=DISCOUNT_ERRORS[reason])

    return discount, discounts.discount_amount(discount, subtotal, shipping_cost)


@router.post("/create-order")
async def create_order(
    payload: CheckoutRequest,
    background_tasks: BackgroundTasks,
    session: dict | None = Depends(get_customer_session),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an order paid outside the site (WhatsApp or transfer).

    When a logged-in customer checks out with their own email, the order
    is attached to their account.

    Returns:
        {"success": true, "orderNumber": "DEL-..."}
    """
    errors = _validation_errors(payload)
    if errors:
        raise HTTPException(status_code=400, detail=" ".join(errors))

    items = _clean_items(payload.items)
    customer = _clean_customer(payload.customer)
    shipping = _clean_shipping(payload.shipping)
    notes = sanitize_string(payload.notes) or None
    shipping_cost = _shipping_cost(payload.shippingCost)
    payment_method = sanitize_string(payload.paymentMethod) or "whatsapp"

    subtotal = sum(item["price"] * item["quantity"] for item in items)

    discount = None
    discount_total = 0.0
    if payload.discountCode:
        discount, discount_total = await _apply_discount(db, payload.discountCode, subtotal, shipping_cost)

    total = subtotal + shipping_cost - discount_total
    if abs(total - payload.total) > TOTAL_TOLERANCE:
        raise HTTPException(
            status_code=400,
            detail="El total calculado no coincide. Por favor, recarga la página."
        )

    try:
        user = await find_or_create_user(
            db, customer["email"], customer["firstName"], customer["lastName"], customer["phone"]
        )
        if session and session.get("email") == customer["email"]:
            user_id = session["user_id"]
        else:
            user_id = user.id

        address = build_shipping_address(user_id, customer, shipping)
        db.add(address)
        await db.flush()

        order = Order(
            order_number=generate_order_number(),
            user_id=user_id,
            address_id=address.id,
            status="PENDING",
            payment_status="PENDING",
            payment_method=payment_method,
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            discount=discount_total,
            total=total,
            notes=notes,
            items=build_order_items(items),
        )
        db.add(order)

        if discount:
            await db.execute(
                update(Discount)
                .where(Discount.id == discount.id)
                .values(used_count=Discount.used_count + 1)
            )

        await db.commit()
        order = await load_order(db, id=order.id)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Error creating order")
        raise HTTPException(status_code=500, detail="Error al crear el pedido.")

    logger.info(f"Order {order.order_number} created ({payment_method}, ${total:.2f})")

    email_data = build_order_email_data(order)
    email_data["customer_name"] = f"{customer['firstName']} {customer['lastName']}"
    email_data["customer_phone"] = customer["phone"]
    background_tasks.add_task(send_order_emails, email_data)

    return {"success": True, "orderNumber": order.order_number}


@router.post("/create-preference")
async def create_preference(payload: CheckoutRequest, db: AsyncSession = Depends(get_db)):
    """
    Create a PENDING Mercado Pago order and its payment preference.

    The order number doubles as the preference's external_reference, which
    is how the webhook finds the order again.

    Returns:
        {"success", "orderNumber", "initPoint", "sandboxInitPoint"}
    """
    customer = _section(payload.customer)
    shipping = _section(payload.shipping)
    items = payload.items or []

    usable = items and all(
        is_positive_number(_section(i).get("price")) and is_positive_integer(_section(i).get("quantity"))
        for i in items
    )
    if not usable or not is_valid_email(customer.get("email")) or not sanitize_string(shipping.get("address")):
        raise HTTPException(status_code=400, detail="Datos incompletos")

    items = [
        {
            "variantId": int(i["variantId"]) if is_positive_integer(i.get("variantId")) else None,
            "productName": sanitize_string(i.get("productName")),
            "variantName": sanitize_string(i.get("variantName")),
            "price": float(i["price"]),
            "quantity": int(i["quantity"]),
        }
        for i in items
    ]
    customer = _clean_customer(customer)
    shipping = _clean_shipping(shipping)
    subtotal = sum(item["price"] * item["quantity"] for item in items)
    shipping_cost = _shipping_cost(payload.shippingCost)
    order_number = generate_order_number()

    try:
        user = await find_or_create_user(
            db, customer["email"], customer["firstName"], customer["lastName"], customer["phone"]
        )
        address = build_shipping_address(user.id, customer, shipping)
        db.add(address)
        await db.flush()

        order = Order(
            order_number=order_number,
            user_id=user.id,
            address_id=address.id,
            status="PENDING",
            payment_status="PENDING",
            payment_method="mercadopago",
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            total=payload.total if is_positive_number(payload.total) else subtotal + shipping_cost,
            notes=sanitize_string(payload.notes) or None,
            items=build_order_items(items),
        )
        db.add(order)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Error creating checkout preference")
        raise HTTPException(status_code=500, detail="Error al crear la preferencia de pago")

    site_url = settings.SITE_URL.rstrip("/")
    preference_data = {
        "items": [
            {
                "id": str(item["variantId"]),
                "title": item_display_name(item["productName"], item["variantName"]),
                "quantity": item["quantity"],
                "unit_price": item["price"],
                "currency_id": "MXN",
            }
            for item in items
        ],
        "payer": {
            "email": customer["email"],
            "name": customer["firstName"],
            "surname": customer["lastName"],
            "phone": {"number": customer["phone"]},
        },
        "back_urls": {
            "success": f"{site_url}/checkout/resultado?status=success",
            "failure": f"{site_url}/checkout/resultado?status=failure",
            "pending": f"{site_url}/checkout/resultado?status=pending",
        },
        "auto_return": "approved",
        "notification_url": f"{site_url}/api/webhooks/mercadopago",
        "external_reference": order_number,
        "statement_descriptor": "DELICIAS CAMPO",
    }

    try:
        preference = await mp.create_preference(preference_data)
    except mp.PaymentGatewayError:
        logger.exception(f"Error creating checkout preference for {order_number}")
        raise HTTPException(status_code=500, detail="Error al crear la preferencia de pago")

    order.mp_preference_id = preference.get("id")
    await db.commit()

    return {
        "success": True,
        "orderNumber": order_number,
        "initPoint": preference.get("init_point"),
        "sandboxInitPoint": preference.get("sandbox_init_point"),
    }
