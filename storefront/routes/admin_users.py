"""
Admin User Routes

- GET    /api/admin/users       all users, newest first, with order counts
- GET    /api/admin/users/{id}  detail with the 10 most recent orders
- PUT    /api/admin/users/{id}  update names, phone, email, role
- DELETE /api/admin/users/{id}  SUPER_ADMIN only; an admin cannot delete itself

Password hashes never leave this module; responses only say whether a
password is set.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.database import get_db
from storefront.dependencies import require_admin, require_super_admin
from storefront.models import USER_ROLES, Order, User
from storefront.services.serializers import iso, money, user_to_dict
from storefront.utils.validators import is_valid_email, parse_id, sanitize_string


router = APIRouter(prefix="/api/admin/users", tags=["admin"])


class UserUpdate(BaseModel):
    firstName: str | None = None
    lastName: str | None = None
    phone: str | None = None
    email: str | None = None
    role: str | None = None


def _user_id(raw: str) -> int:
    user_id = parse_id(raw)
    if user_id is None:
        raise HTTPException(status_code=400, detail="ID de usuario inválido")
    return user_id


async def _find_by(db: AsyncSession, **filters) -> User | None:
    result = await db.execute(select(User).filter_by(**filters))
    return result.scalars().first()


async def _order_count(db: AsyncSession, user_id: int) -> int:
    return await db.scalar(select(func.count(Order.id)).filter(Order.user_id == user_id))


@router.get("", dependencies=[Depends(require_admin)])
async def list_users(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(User, func.count(Order.id))
        .outerjoin(Order, Order.user_id == User.id)
        .group_by(User.id)
        .order_by(User.created_at.desc(), User.id.desc())
    )
    return [user_to_dict(user, count) for user, count in result.all()]


@router.get("/{user_id}", dependencies=[Depends(require_admin)])
async def get_user(user_id: str, db: AsyncSession = Depends(get_db)):
    user = await _find_by(db, id=_user_id(user_id))
    if not user:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")

    result = await db.execute(
        select(Order)
        .filter(Order.user_id == user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(10)
    )

    data = user_to_dict(user, await _order_count(db, user.id))
    data["orders"] = [
        {
            "id": order.id,
            "orderNumber": order.order_number,
            "status": order.status,
            "paymentStatus": order.payment_status,
            "total": money(order.total),
            "createdAt": iso(order.created_at),
        }
        for order in result.scalars().all()
    ]
    return data


@router.put("/{user_id}", dependencies=[Depends(require_admin)])
async def update_user(user_id: str, payload: UserUpdate, db: AsyncSession = Depends(get_db)):
    existing = await _find_by(db, id=_user_id(user_id))
    if not existing:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")

    fields = payload.model_fields_set
    updates = {}

    if "firstName" in fields:
        updates["first_name"] = sanitize_string(payload.firstName) or None
    if "lastName" in fields:
        updates["last_name"] = sanitize_string(payload.lastName) or None
    if "phone" in fields:
        updates["phone"] = sanitize_string(payload.phone) or None

    if "email" in fields:
        email = (payload.email or "").strip().lower()
        if not is_valid_email(email):
            raise HTTPException(status_code=400, detail="Email inválido")
        if email != existing.email and await _find_by(db, email=email):
            raise HTTPException(status_code=400, detail="Ya existe un usuario con ese email")
        updates["email"] = email

    if "role" in fields:
        if payload.role not in USER_ROLES:
            raise HTTPException(
                status_code=400,
                detail=f"Rol inválido. Valores permitidos: {', '.join(USER_ROLES)}"
            )
        updates["role"] = payload.role

    if not updates:
        raise HTTPException(status_code=400, detail="No se proporcionaron campos para actualizar")

    for field, value in updates.items():
        setattr(existing, field, value)
    await db.commit()
    await db.refresh(existing)

    return user_to_dict(existing)


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    session: dict = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db)
):
    user_id = _user_id(user_id)

    if user_id == session["user_id"]:
        raise HTTPException(status_code=400, detail="No puedes eliminarte a ti mismo")

    existing = await _find_by(db, id=user_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")

    await db.delete(existing)
    await db.commit()

    return {"message": "Usuario eliminado correctamente"}
