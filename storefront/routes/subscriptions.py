"""
Membership Subscription Routes

- POST /api/subscriptions/create   start a membership through a Mercado Pago preapproval
- GET  /api/subscriptions/status   current membership for an email

Plans and prices (MXN):

    Plan      Monthly  Annual
    BASICO      499     4990
    PREMIUM     799     7990
    FAMILIAR   1199    11990

A customer may hold one PENDING or AUTHORIZED subscription at a time.
The record is created as PENDING before calling the gateway; the
preapproval webhook moves it to AUTHORIZED, PAUSED or CANCELLED.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.config import settings
from storefront.database import get_db
from storefront.models import Subscription, User
from storefront.services import mercadopago as mp
from storefront.services.orders import find_or_create_user
from storefront.services.serializers import iso
from storefront.utils.validators import is_valid_email, sanitize_string

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])

PLAN_PRICES = {
    "BASICO": {"MONTHLY": 499, "ANNUAL": 4990},
    "PREMIUM": {"MONTHLY": 799, "ANNUAL": 7990},
    "FAMILIAR": {"MONTHLY": 1199, "ANNUAL": 11990},
}

# Months between charges
BILLING_FREQUENCY = {"MONTHLY": 1, "ANNUAL": 12}

CYCLE_LABELS = {"MONTHLY": "Mensual", "ANNUAL": "Anual"}

OPEN_STATUSES = ("AUTHORIZED", "PENDING")


class SubscriptionRequest(BaseModel):
    plan: str | None = None
    billingCycle: str | None = None
    customer: dict | None = None


async def _open_subscription(db: AsyncSession, user_id: int) -> Subscription | None:
    result = await db.execute(
        select(Subscription)
        .filter(Subscription.user_id == user_id, Subscription.status.in_(OPEN_STATUSES))
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
    )
    return result.scalars().first()


@router.post("/create")
async def create_subscription(payload: SubscriptionRequest, db: AsyncSession = Depends(get_db)):
    """
    Create a PENDING subscription and its preapproval agreement.

    If the gateway call fails the subscription is cancelled, so the
    customer can try again without hitting the one-open-subscription rule.

    Returns:
        {"success": true, "initPoint": "<gateway checkout URL>"}
    """
    plan = (payload.plan or "").upper()
    if plan not in PLAN_PRICES:
        raise HTTPException(status_code=400, detail="Plan inválido")

    customer = payload.customer or {}
    if not is_valid_email(customer.get("email")):
        raise HTTPException(status_code=400, detail="Email es requerido")

    email = customer["email"].strip().lower()
    cycle = "ANNUAL" if (payload.billingCycle or "").upper() == "ANNUAL" else "MONTHLY"
    price = PLAN_PRICES[plan][cycle]

    try:
        user = await find_or_create_user(
            db,
            email,
            sanitize_string(customer.get("firstName")) or None,
            sanitize_string(customer.get("lastName")) or None,
            sanitize_string(customer.get("phone")) or None,
        )

        if await _open_subscription(db, user.id):
            raise HTTPException(status_code=409, detail="Ya tienes una suscripción activa")

        subscription = Subscription(
            user_id=user.id,
            plan=plan,
            billing_cycle=cycle,
            status="PENDING",
            price=price,
            mp_payer_email=email,
        )
        db.add(subscription)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Error creating subscription")
        raise HTTPException(status_code=500, detail="Error al crear la suscripción")

    preapproval = {
        "reason": f"Membresía {plan.capitalize()} - {CYCLE_LABELS[cycle]}",
        "external_reference": str(subscription.id),
        "payer_email": email,
        "auto_recurring": {
            "frequency": BILLING_FREQUENCY[cycle],
            "frequency_type": "months",
            "transaction_amount": price,
            "currency_id": "MXN",
        },
        "back_url": f"{settings.SITE_URL.rstrip('/')}/membresias/resultado",
        "status": "pending",
    }

    try:
        created = await mp.create_subscription(preapproval)
    except mp.PaymentGatewayError:
        logger.exception(f"Error creating preapproval for subscription {subscription.id}")
        subscription.status = "CANCELLED"
        await db.commit()
        raise HTTPException(status_code=500, detail="Error al crear la suscripción")

    subscription.mp_subscription_id = created.get("id")
    subscription.mp_init_point = created.get("init_point")
    await db.commit()

    logger.info(f"Subscription {subscription.id} created ({plan} {cycle}) for {email}")

    return {"success": True, "initPoint": created.get("init_point")}


@router.get("/status")
async def subscription_status(email: str | None = None, db: AsyncSession = Depends(get_db)):
    if not email:
        raise HTTPException(status_code=400, detail="Email es requerido")

    result = await db.execute(select(User).filter(User.email == email.strip().lower()))
    user = result.scalars().first()
    if not user:
        return {"subscription": None}

    subscription = await _open_subscription(db, user.id)
    if not subscription:
        return {"subscription": None}

    return {
        "subscription": {
            "plan": subscription.plan,
            "billingCycle": subscription.billing_cycle,
            "status": subscription.status,
            "price": float(subscription.price),
            "startDate": iso(subscription.start_date),
        }
    }
