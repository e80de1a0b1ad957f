"""
Order Creation Helpers

Checkout (manual payment and Mercado Pago) and memberships share the
same bookkeeping: generate an order number, find or create the buyer,
record the shipping address.
"""

import secrets
import string
import time

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from storefront.models import Address, Order, OrderItem, ProductVariant, User


ORDER_PREFIX = "DEL"
BASE36 = string.digits + string.ascii_uppercase


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36[remainder])
    return "".join(reversed(digits))


def generate_order_number() -> str:
    """
    Order number like "DEL-M1X2Y3Z4-K9QA": base36 milliseconds since the
    epoch plus four random base36 characters.
    """
    timestamp = to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(BASE36) for _ in range(4))
    return f"{ORDER_PREFIX}-{timestamp}-{suffix}"


def item_display_name(product_name: str, variant_name: str | None) -> str:
    return f"{product_name} - {variant_name}" if variant_name else product_name


async def find_or_create_user(db: AsyncSession, email: str, first_name=None, last_name=None, phone=None) -> User:
    """
    Look up a buyer by email, creating a passwordless customer if needed.

    Guest buyers can later register with the same email to set a password.
    """
    result = await db.execute(select(User).filter(User.email == email))
    user = result.scalars().first()
    if user:
        return user

    user = User(email=email, first_name=first_name, last_name=last_name, phone=phone)
    db.add(user)
    await db.flush()  # assigns user.id
    return user


def build_shipping_address(user_id: int, customer: dict, shipping: dict) -> Address:
    return Address(
        user_id=user_id,
        type="SHIPPING",
        first_name=customer.get("firstName"),
        last_name=customer.get("lastName"),
        street=shipping.get("address"),
        city=shipping.get("city"),
        state=shipping.get("state"),
        postal_code=shipping.get("zipCode"),
        phone=customer.get("phone"),
    )


def build_order_items(items: list[dict]) -> list[OrderItem]:
    return [
        OrderItem(
            variant_id=item.get("variantId"),
            name=item_display_name(item.get("productName", ""), item.get("variantName")),
            price=item["price"],
            quantity=item["quantity"],
            total=item["price"] * item["quantity"],
        )
        for item in items
    ]


async def load_order(db: AsyncSession, **filters) -> Order | None:
    """
    Fetch one order with everything the admin detail view and the
    order emails read: user, items -> variant -> product, address.

    Example:
        order = await load_order(db, id=5)
        order = await load_order(db, order_number="DEL-...")
    """
    query = select(Order).options(
        selectinload(Order.user),
        selectinload(Order.shipping_address),
        selectinload(Order.items).selectinload(OrderItem.variant).selectinload(ProductVariant.product),
    ).filter_by(**filters).execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalars().first()
