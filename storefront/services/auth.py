"""
Session Token and Password Service

This module issues and verifies the signed session tokens used by the two
kinds of principals, and hashes/verifies passwords.

Two independent session kinds share one signing mechanism:
- Admin session: {user_id, email, role}, cookie "admin_session"
- Customer session: {user_id, email, role: "CUSTOMER", type: "customer"},
  cookie "customer_session"

Key concepts:
- Tokens are JWTs signed with HMAC-SHA256 using SECRET_KEY
- Tokens expire 7 days after issuance; there is no server-side revocation,
  logging out simply deletes the cookie
- A bad token (malformed, expired, forged) is treated exactly like a
  missing one: the request is anonymous
"""

import logging
from datetime import datetime, timedelta

import bcrypt
from fastapi import Response
from jose import JWTError, jwt

from storefront.config import settings

logger = logging.getLogger(__name__)


ALGORITHM = "HS256"

SESSION_LIFETIME = timedelta(days=7)

ADMIN_COOKIE = "admin_session"
CUSTOMER_COOKIE = "customer_session"

# Discriminator that separates customer tokens from admin tokens
CUSTOMER_TOKEN_TYPE = "customer"


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (cost factor from settings, 12 by default)."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison, delegated to bcrypt."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        logger.warning("Password check against a malformed hash")
        return False


def create_token(data: dict, expires_delta: timedelta = SESSION_LIFETIME) -> str:
    """
    Sign a payload into a JWT with an "exp" claim.

    Args:
        data: Claims to encode (copied, not mutated)
        expires_delta: Lifetime of the token, 7 days by default

    Returns:
        Encoded JWT string
    """
    to_encode = data.copy()
    to_encode.update({"exp": datetime.utcnow() + expires_delta})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict | None:
    """
    Verify signature and expiry of a JWT.

    Returns:
        Decoded payload if valid, None if invalid/expired
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def create_admin_session(user_id: int, email: str, role: str, expires_delta: timedelta = SESSION_LIFETIME) -> str:
    return create_token({"user_id": user_id, "email": email, "role": role}, expires_delta)


def verify_admin_session(token: str) -> dict | None:
    """
    Verify an admin session token.

    The role is not checked here; admin routes require an admin role
    when they read the session (see storefront.dependencies).
    """
    return verify_token(token)


def create_customer_session(user_id: int, email: str, expires_delta: timedelta = SESSION_LIFETIME) -> str:
    return create_token(
        {
            "user_id": user_id,
            "email": email,
            "role": "CUSTOMER",
            "type": CUSTOMER_TOKEN_TYPE,
        },
        expires_delta,
    )


def verify_customer_session(token: str) -> dict | None:
    """
    Verify a customer session token.

    On top of signature and expiry, the token must carry type "customer",
    so a valid admin token is never accepted as a customer session.
    """
    payload = verify_token(token)
    if not payload or payload.get("type") != CUSTOMER_TOKEN_TYPE:
        return None
    return payload


def set_session_cookie(response: Response, key: str, token: str):
    """
    Attach a session cookie to the response.

    - httponly: not readable from JavaScript
    - secure: HTTPS only, in production
    - samesite=lax: basic CSRF protection
    """
    response.set_cookie(
        key=key,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=int(SESSION_LIFETIME.total_seconds()),
        path="/",
    )


def delete_session_cookie(response: Response, key: str):
    response.delete_cookie(key, path="/")
