"""
Admin Authentication Routes

Email/password login for the admin console:
1. Admin posts email and password
2. Credentials are checked against the bcrypt hash
3. A 7-day session token is stored in the "admin_session" cookie

Only users with role ADMIN or SUPER_ADMIN may log in here. Login attempts
are limited to 5 per minute per client.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.database import get_db
from storefront.dependencies import require_admin
from storefront.limiter import admin_login_limiter, enforce_limit
from storefront.models import ADMIN_ROLES, User
from storefront.services.auth import (
    ADMIN_COOKIE,
    create_admin_session,
    delete_session_cookie,
    set_session_cookie,
    verify_password,
)


router = APIRouter(prefix="/api/admin", tags=["admin"])


class AdminLoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


@router.post("/login")
async def login(
    payload: AdminLoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """
    Log an admin in and set the session cookie.

    Returns:
        {"success": true, "user": {"id", "email", "role"}}

    Raises:
        HTTPException: 429 rate limited, 400 missing fields,
            401 bad credentials, 403 not an admin
    """
    enforce_limit(admin_login_limiter, request)

    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Email y contraseña son requeridos")

    result = await db.execute(select(User).filter(User.email == payload.email.strip().lower()))
    user = result.scalars().first()

    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Credenciales inválidas")

    if user.role not in ADMIN_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No tienes permisos de administrador")

    if not user.password_hash:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Cuenta sin contraseña configurada")

    if not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Credenciales inválidas")

    token = create_admin_session(user.id, user.email, user.role)
    set_session_cookie(response, ADMIN_COOKIE, token)

    return {
        "success": True,
        "user": {"id": user.id, "email": user.email, "role": user.role},
    }


@router.post("/logout")
async def logout(response: Response):
    delete_session_cookie(response, ADMIN_COOKIE)
    return {"success": True}


@router.get("/me")
async def me(session: dict = Depends(require_admin)):
    return {
        "user": {
            "id": session["user_id"],
            "email": session["email"],
            "role": session["role"],
        }
    }
