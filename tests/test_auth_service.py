from datetime import timedelta

from jose import jwt

from storefront.config import settings
from storefront.services.auth import (
    ALGORITHM,
    create_admin_session,
    create_customer_session,
    create_token,
    hash_password,
    verify_admin_session,
    verify_customer_session,
    verify_password,
    verify_token,
)


def test_password_hash_roundtrip():
    hashed = hash_password("Admin123!")

    assert hashed != "Admin123!"
    assert verify_password("Admin123!", hashed)
    assert not verify_password("admin123!", hashed)


def test_verify_password_rejects_non_bcrypt_hash():
    assert not verify_password("whatever", "not-a-bcrypt-hash")


def test_admin_session_carries_payload():
    token = create_admin_session(7, "admin@example.com", "SUPER_ADMIN")

    payload = verify_admin_session(token)

    assert payload["user_id"] == 7
    assert payload["email"] == "admin@example.com"
    assert payload["role"] == "SUPER_ADMIN"
    assert "exp" in payload


def test_forged_token_is_rejected():
    token = create_admin_session(7, "admin@example.com", "ADMIN")
    header, body, signature = token.split(".")
    forged_signature = ("A" if signature[0] != "A" else "B") + signature[1:]

    assert verify_admin_session(f"{header}.{body}.{forged_signature}") is None


def test_token_signed_with_other_key_is_rejected():
    token = jwt.encode({"user_id": 1, "email": "x@example.com", "role": "ADMIN"}, "other-key", algorithm=ALGORITHM)

    assert verify_token(token) is None


def test_expired_token_is_rejected():
    token = create_admin_session(7, "admin@example.com", "ADMIN", expires_delta=timedelta(seconds=-1))

    assert verify_admin_session(token) is None


def test_garbage_token_is_rejected():
    assert verify_token("not.a.jwt") is None


def test_customer_session_roundtrip():
    payload = verify_customer_session(create_customer_session(3, "cliente@example.com"))

    assert payload["user_id"] == 3
    assert payload["role"] == "CUSTOMER"
    assert payload["type"] == "customer"


def test_customer_session_requires_customer_type():
    token = create_token({"user_id": 3, "email": "cliente@example.com", "role": "CUSTOMER", "type": "admin"})

    assert verify_token(token) is not None
    assert verify_customer_session(token) is None


def test_admin_token_is_not_a_customer_session():
    token = create_admin_session(1, "admin@example.com", "ADMIN")

    assert verify_customer_session(token) is None


def test_tokens_use_configured_secret():
    token = create_customer_session(3, "cliente@example.com")

    decoded = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    assert decoded["email"] == "cliente@example.com"
