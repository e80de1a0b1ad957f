"""
Authentication Dependencies for FastAPI Routes

This module provides dependency injection functions that resolve the
admin and customer sessions from their cookies.

Missing or invalid cookies never raise here on their own: the optional
dependencies return None (anonymous), and the require_* variants turn
that into a 401/403 for routes that need a principal.
"""

from fastapi import Depends, HTTPException, Request, status

from storefront.models import ADMIN_ROLES
from storefront.services.auth import (
    ADMIN_COOKIE,
    CUSTOMER_COOKIE,
    verify_admin_session,
    verify_customer_session,
)


async def get_admin_session(request: Request) -> dict | None:
    """
    Return the admin session payload, or None if there is no valid cookie.
    """
    token = request.cookies.get(ADMIN_COOKIE)
    if not token:
        return None
    return verify_admin_session(token)


async def require_admin(session: dict | None = Depends(get_admin_session)) -> dict:
    """
    Dependency for admin console routes.

    The session must exist and carry an ADMIN or SUPER_ADMIN role.
    A customer token placed in the admin cookie fails here because its
    role is CUSTOMER.

    Raises:
        HTTPException: 401 "No autorizado"
    """
    if not session or session.get("role") not in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No autorizado"
        )
    return session


async def require_super_admin(session: dict | None = Depends(get_admin_session)) -> dict:
    if not session or session.get("role") != "SUPER_ADMIN":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Solo SUPER_ADMIN puede eliminar usuarios"
        )
    return session


async def get_customer_session(request: Request) -> dict | None:
    """
    Return the customer session payload, or None when anonymous.

    Used both by customer-only routes and by checkout, which links the
    order to the logged-in customer when the emails match.
    """
    token = request.cookies.get(CUSTOMER_COOKIE)
    if not token:
        return None
    return verify_customer_session(token)


async def require_customer(session: dict | None = Depends(get_customer_session)) -> dict:
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No autenticado."
        )
    return session
