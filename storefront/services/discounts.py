"""
Discount Code Evaluation

Shared by the public validation endpoint (cart preview) and by checkout,
which re-validates the code server-side before creating the order.

Both callers need the same checks but word their rejections differently,
so check_discount() returns a reason code instead of a message.
"""

import math
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.models import Discount


# Reasons returned by check_discount()
INACTIVE = "inactive"
NOT_STARTED = "not_started"
EXPIRED = "expired"
EXHAUSTED = "exhausted"
BELOW_MINIMUM = "below_minimum"


async def find_discount_by_code(db: AsyncSession, code: str) -> Discount | None:
    """Case-insensitive lookup; codes are stored upper-case."""
    result = await db.execute(
        select(Discount).filter(func.upper(Discount.code) == code.strip().upper())
    )
    return result.scalars().first()


def check_discount(discount: Discount, subtotal: float, now: datetime | None = None) -> str | None:
    """
    Check whether a discount can be applied to a cart.

    Args:
        discount: The discount found for the code
        subtotal: Cart subtotal before shipping
        now: Reference time (defaults to current UTC time)

    Returns:
        None if applicable, otherwise one of the reason constants
    """
    now = now or datetime.utcnow()
    if not discount.active:
        return INACTIVE
    if discount.start_date and now < discount.start_date:
        return NOT_STARTED
    if discount.end_date and now > discount.end_date:
        return EXPIRED
    if discount.max_uses is not None and discount.used_count >= discount.max_uses:
        return EXHAUSTED
    if subtotal < minimum_purchase(discount):
        return BELOW_MINIMUM
    return None


def minimum_purchase(discount: Discount) -> float:
    return float(discount.min_purchase) if discount.min_purchase else 0.0


def round_money(amount: float) -> float:
    """Round half up to cents."""
    return math.floor(amount * 100 + 0.5) / 100


def discount_amount(discount: Discount, subtotal: float, shipping_cost: float = 0) -> float:
    """
    Amount to subtract from the order total.

    - PERCENTAGE: value% of the subtotal, rounded to cents
    - FIXED: value, capped at the subtotal
    - FREE_SHIPPING: the shipping cost
    """
    value = float(discount.value or 0)
    if discount.type == "PERCENTAGE":
        return round_money(subtotal * value / 100)
    if discount.type == "FIXED":
        return min(value, subtotal)
    if discount.type == "FREE_SHIPPING":
        return shipping_cost
    return 0.0
