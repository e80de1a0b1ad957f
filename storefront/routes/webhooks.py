"""
Mercado Pago Webhook

POST /api/webhooks/mercadopago receives gateway notifications:
- "payment": a checkout payment changed state. The payment is fetched
  from the API and its status copied onto the order whose order number
  is the payment's external_reference.
- "subscription_preapproval": a membership agreement changed state. The
  preapproval is fetched and its status copied onto the subscription.

Payment status mapping (payment status / order status):

    approved                        PAID / CONFIRMED
    rejected, cancelled             FAILED / CANCELLED
    refunded                        REFUNDED / REFUNDED
    in_process, pending, authorized PENDING / PENDING

The endpoint always answers 200 {"received": true}, even when processing
fails, so the gateway does not keep retrying; failures are logged.
This path is exempt from the API rate limit.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.database import get_db
from storefront.models import Subscription
from storefront.services import mercadopago as mp
from storefront.services.email import build_order_email_data, send_payment_confirmed_email
from storefront.services.orders import load_order
from storefront.utils.validators import parse_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

PAYMENT_STATUS_MAP = {
    "approved": ("PAID", "CONFIRMED"),
    "rejected": ("FAILED", "CANCELLED"),
    "cancelled": ("FAILED", "CANCELLED"),
    "refunded": ("REFUNDED", "REFUNDED"),
    "in_process": ("PENDING", "PENDING"),
    "pending": ("PENDING", "PENDING"),
    "authorized": ("PENDING", "PENDING"),
}

SUBSCRIPTION_STATUS_MAP = {
    "authorized": "AUTHORIZED",
    "paused": "PAUSED",
    "cancelled": "CANCELLED",
    "pending": "PENDING",
}

RECEIVED = {"received": True}


async def handle_payment(db: AsyncSession, payment_id: str, background_tasks: BackgroundTasks):
    payment = await mp.get_payment(payment_id)
    external_reference = payment.get("external_reference")
    if not external_reference:
        logger.warning(f"Webhook: no external_reference in payment {payment_id}")
        return

    payment_status, order_status = PAYMENT_STATUS_MAP.get(payment.get("status"), ("PENDING", "PENDING"))

    order = await load_order(db, order_number=external_reference)
    if not order:
        logger.warning(f"Webhook: order {external_reference} not found for payment {payment_id}")
        return

    newly_paid = payment_status == "PAID" and order.payment_status != "PAID"

    order.payment_status = payment_status
    order.status = order_status
    order.mp_payment_id = str(payment_id)
    await db.commit()

    logger.info(f"Webhook: Order {external_reference} updated to {payment_status}")

    if newly_paid:
        background_tasks.add_task(send_payment_confirmed_email, build_order_email_data(order))


async def handle_preapproval(db: AsyncSession, preapproval_id: str):
    preapproval = await mp.get_subscription(preapproval_id)

    status = SUBSCRIPTION_STATUS_MAP.get(preapproval.get("status"))
    if status is None:
        logger.warning(f"Webhook: unknown preapproval status {preapproval.get('status')!r} for {preapproval_id}")
        return

    result = await db.execute(select(Subscription).filter(Subscription.mp_subscription_id == str(preapproval_id)))
    subscription = result.scalars().first()

    # Fall back to our own id, sent as external_reference at creation
    if subscription is None:
        subscription_id = parse_id(preapproval.get("external_reference"))
        if subscription_id is not None:
            result = await db.execute(select(Subscription).filter(Subscription.id == subscription_id))
            subscription = result.scalars().first()

    if subscription is None:
        logger.warning(f"Webhook: subscription not found for preapproval {preapproval_id}")
        return

    subscription.status = status
    subscription.mp_subscription_id = str(preapproval_id)
    if status == "AUTHORIZED" and subscription.start_date is None:
        subscription.start_date = datetime.utcnow()
    await db.commit()

    logger.info(f"Webhook: Subscription {subscription.id} updated to {status}")


@router.post("/mercadopago")
async def mercadopago_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db)
):
    """
    Dispatch a gateway notification by type.

    The type and resource id are read from the JSON body
    ({"type": ..., "data": {"id": ...}}), falling back to the
    ?type=/?topic= and ?data.id=/?id= query parameters.
    """
    try:
        try:
            body = await request.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        params = request.query_params
        event_type = body.get("type") or params.get("type") or params.get("topic")
        data = body.get("data") if isinstance(body.get("data"), dict) else {}
        resource_id = data.get("id") or params.get("data.id") or params.get("id")

        if not resource_id:
            return RECEIVED

        if event_type == "payment":
            await handle_payment(db, str(resource_id), background_tasks)
        elif event_type == "subscription_preapproval":
            await handle_preapproval(db, str(resource_id))
        else:
            logger.debug(f"Webhook: ignoring notification type {event_type!r}")
    except Exception:
        logger.exception("Webhook error")

    return RECEIVED
