"""
Customer Account Routes

Storefront accounts, independent from the admin console login:
- POST /api/customer/register  create an account (or claim a checkout-created one)
- POST /api/customer/login     email/password login
- POST /api/customer/logout    clear the session cookie
- GET  /api/customer/me        profile and order history, or {"user": null}
- PUT  /api/customer/profile   update names, phone, password

Guest checkout creates users without a password. Registering with the
same email later sets the password on that user instead of failing, so
the earlier orders show up in the new account.

Register and login are limited to 5 attempts per minute per client, each
with its own counter.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from storefront.database import get_db
from storefront.dependencies import get_customer_session, require_customer
from storefront.limiter import customer_login_limiter, customer_register_limiter, enforce_limit
from storefront.models import Order, OrderItem, Product, ProductVariant, User
from storefront.services.auth import (
    CUSTOMER_COOKIE,
    create_customer_session,
    delete_session_cookie,
    hash_password,
    set_session_cookie,
    verify_password,
)
from storefront.services.serializers import customer_profile, iso, money
from storefront.utils.validators import is_valid_email, sanitize_string

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/customer", tags=["customer"])

MIN_PASSWORD_LENGTH = 8


class RegisterRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    firstName: str | None = None
    lastName: str | None = None
    phone: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class ProfileUpdate(BaseModel):
    firstName: str | None = None
    lastName: str | None = None
    phone: str | None = None
    password: str | None = None


def _is_blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


def _start_session(response: Response, user: User):
    token = create_customer_session(user.id, user.email)
    set_session_cookie(response, CUSTOMER_COOKIE, token)


def _history_order(order: Order) -> dict:
    """
    Shape an order for the profile page.

    The item name snapshot "Product - Variant" is split back into its parts.
    """
    items = []
    for item in order.items:
        product_name, _, variant_name = item.name.partition(" - ")
        product = item.variant.product if item.variant else None
        items.append({
            "productName": product_name,
            "variantName": variant_name,
            "quantity": item.quantity,
            "price": money(item.price),
            "image": product.images[0].url if product and product.images else None,
        })

    address = order.shipping_address
    return {
        "id": order.order_number,
        "date": iso(order.created_at),
        "status": (order.status or "").lower(),
        "paymentStatus": (order.payment_status or "").lower(),
        "paymentMethod": order.payment_method,
        "items": items,
        "shipping": money(order.shipping_cost),
        "discount": money(order.discount),
        "total": money(order.total),
        "shippingAddress": {
            "address": address.street,
            "city": address.city,
            "state": address.state,
            "zipCode": address.postal_code,
        } if address else None,
    }


@router.post("/register")
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a customer and log them in.

    Raises:
        HTTPException: 429 rate limited, 400 invalid fields,
            409 an account with a password already uses the email
    """
    enforce_limit(customer_register_limiter, request)

    if not is_valid_email(payload.email):
        raise HTTPException(status_code=400, detail="Email no válido.")
    if not payload.password or len(payload.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="La contraseña debe tener al menos 8 caracteres.")
    if _is_blank(payload.firstName):
        raise HTTPException(status_code=400, detail="El nombre es requerido.")
    if _is_blank(payload.lastName):
        raise HTTPException(status_code=400, detail="El apellido es requerido.")

    email = payload.email.strip().lower()

    try:
        result = await db.execute(select(User).filter(User.email == email))
        user = result.scalars().first()

        if user and user.password_hash:
            raise HTTPException(status_code=409, detail="Ya existe una cuenta con este email. Inicia sesión.")

        if user is None:
            user = User(email=email, phone=sanitize_string(payload.phone) if payload.phone else None)
            db.add(user)
        elif payload.phone:
            user.phone = sanitize_string(payload.phone)

        user.password_hash = hash_password(payload.password)
        user.first_name = sanitize_string(payload.firstName)
        user.last_name = sanitize_string(payload.lastName)

        await db.commit()
        await db.refresh(user)
    except SQLAlchemyError:
        logger.exception("Register error")
        raise HTTPException(status_code=500, detail="Error al registrar.")

    _start_session(response, user)
    return {"success": True, "user": customer_profile(user)}


@router.post("/login")
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    enforce_limit(customer_login_limiter, request)

    if not is_valid_email(payload.email):
        raise HTTPException(status_code=400, detail="Email no válido.")
    if not payload.password:
        raise HTTPException(status_code=400, detail="La contraseña es requerida.")

    try:
        result = await db.execute(select(User).filter(User.email == payload.email.strip().lower()))
        user = result.scalars().first()
    except SQLAlchemyError:
        logger.exception("Login error")
        raise HTTPException(status_code=500, detail="Error al iniciar sesión.")

    # Same message for unknown email, passwordless account and wrong password
    if not user or not user.password_hash or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Email o contraseña incorrectos.")

    _start_session(response, user)
    return {"success": True, "user": customer_profile(user)}


@router.post("/logout")
async def logout(response: Response):
    delete_session_cookie(response, CUSTOMER_COOKIE)
    return {"success": True}


@router.get("/me")
async def me(session: dict | None = Depends(get_customer_session), db: AsyncSession = Depends(get_db)):
    if not session:
        return {"user": None}

    try:
        result = await db.execute(
            select(User)
            .options(
                selectinload(User.orders).selectinload(Order.shipping_address),
                selectinload(User.orders)
                .selectinload(Order.items)
                .selectinload(OrderItem.variant)
                .selectinload(ProductVariant.product)
                .selectinload(Product.images),
            )
            .filter(User.id == session["user_id"])
        )
        user = result.scalars().first()
    except SQLAlchemyError:
        logger.exception("Get customer error")
        raise HTTPException(status_code=500, detail="Error al obtener perfil.")

    if not user:
        return {"user": None}

    data = customer_profile(user)
    data["hasPassword"] = bool(user.password_hash)
    data["createdAt"] = iso(user.created_at)
    data["orders"] = [_history_order(order) for order in user.orders]
    return {"user": data}


@router.put("/profile")
async def update_profile(
    payload: ProfileUpdate,
    session: dict = Depends(require_customer),
    db: AsyncSession = Depends(get_db)
):
    """
    Update the logged-in customer's profile.

    Blank names are ignored rather than clearing the stored name; an
    explicit empty phone clears it.
    """
    fields = payload.model_fields_set
    updates = {}

    if not _is_blank(payload.firstName):
        updates["first_name"] = sanitize_string(payload.firstName)
    if not _is_blank(payload.lastName):
        updates["last_name"] = sanitize_string(payload.lastName)
    if "phone" in fields:
        updates["phone"] = sanitize_string(payload.phone) if payload.phone else None
    if payload.password:
        if len(payload.password) < MIN_PASSWORD_LENGTH:
            raise HTTPException(status_code=400, detail="La contraseña debe tener al menos 8 caracteres.")
        updates["password_hash"] = hash_password(payload.password)

    if not updates:
        raise HTTPException(status_code=400, detail="No hay datos para actualizar.")

    try:
        result = await db.execute(select(User).filter(User.id == session["user_id"]))
        user = result.scalars().first()
        if not user:
            raise HTTPException(status_code=401, detail="No autenticado.")

        for field, value in updates.items():
            setattr(user, field, value)
        await db.commit()
        await db.refresh(user)
    except SQLAlchemyError:
        logger.exception("Profile update error")
        raise HTTPException(status_code=500, detail="Error al actualizar perfil.")

    data = customer_profile(user)
    data["hasPassword"] = bool(user.password_hash)
    return {"success": True, "user": data}
