"""
Payment Gateway Client - Mercado Pago

This module wraps the two ways the storefront talks to Mercado Pago:
1. Recurring billing (memberships): plain REST calls to the preapproval API
   - POST /preapproval      create an agreement
   - GET  /preapproval/{id} fetch its current state
2. One-time checkout: the official SDK, for payment preferences and for
   looking up a payment referenced by a webhook notification

All calls are blocking HTTP requests, so they run in a worker thread to
keep the event loop free. There are no retries and no idempotency keys:
any failure surfaces as PaymentGatewayError and the caller decides what
to report.
"""

import asyncio
import logging

import mercadopago
import requests

from storefront.config import settings

logger = logging.getLogger(__name__)


MP_API_BASE = "https://api.mercadopago.com"

# Seconds before a REST call to the gateway is abandoned
REQUEST_TIMEOUT = 15


class PaymentGatewayError(Exception):
    """Raised when a Mercado Pago call fails or answers with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _auth_headers() -> dict:
    return {"Authorization": f"Bearer {settings.MP_ACCESS_TOKEN}"}


def _request(method: str, path: str, action: str, **kwargs) -> dict:
    """
    Blocking REST call to the Mercado Pago API.

    Connection failures and non-2xx answers both become PaymentGatewayError.
    """
    try:
        response = requests.request(
            method,
            f"{MP_API_BASE}{path}",
            headers=_auth_headers(),
            timeout=REQUEST_TIMEOUT,
            **kwargs,
        )
    except requests.RequestException as e:
        raise PaymentGatewayError(f"MP {action} failed: {e}") from e
    if not response.ok:
        raise PaymentGatewayError(
            f"MP {action} failed ({response.status_code}): {response.text}",
            response.status_code,
        )
    return response.json()


def _sdk() -> "mercadopago.SDK":
    return mercadopago.SDK(settings.MP_ACCESS_TOKEN)


async def create_subscription(payload: dict) -> dict:
    """
    Create a recurring-billing agreement (preapproval).

    Args:
        payload: Preapproval body, e.g.
            {
                "reason": "Membresía Premium - Mensual",
                "external_reference": "42",
                "payer_email": "cliente@example.com",
                "auto_recurring": {
                    "frequency": 1,
                    "frequency_type": "months",
                    "transaction_amount": 799,
                    "currency_id": "MXN",
                },
                "back_url": "https://.../membresias/resultado",
                "status": "pending",
            }

    Returns:
        The created preapproval, including "id" and "init_point"

    Raises:
        PaymentGatewayError: If the API does not answer 2xx
    """
    return await asyncio.to_thread(_request, "POST", "/preapproval", "preapproval creation", json=payload)


async def get_subscription(subscription_id: str) -> dict:
    """
    Fetch a preapproval agreement by id.

    Raises:
        PaymentGatewayError: If the API does not answer 2xx
    """
    return await asyncio.to_thread(_request, "GET", f"/preapproval/{subscription_id}", "preapproval fetch")


async def create_preference(preference_data: dict) -> dict:
    """
    Create a one-time checkout preference through the SDK.

    Returns:
        The preference, including "id", "init_point" and "sandbox_init_point"
    """
    def _create_sync():
        try:
            result = _sdk().preference().create(preference_data)
        except requests.RequestException as e:
            raise PaymentGatewayError(f"MP preference creation failed: {e}") from e
        status = result.get("status")
        if status not in (200, 201):
            raise PaymentGatewayError(
                f"MP preference creation failed ({status}): {result.get('response')}",
                status,
            )
        return result["response"]

    return await asyncio.to_thread(_create_sync)


async def get_payment(payment_id: str) -> dict:
    """
    Look up a payment by id (used by the webhook).

    Returns:
        Payment data, including "status" and "external_reference"
    """
    def _get_sync():
        try:
            result = _sdk().payment().get(payment_id)
        except requests.RequestException as e:
            raise PaymentGatewayError(f"MP payment fetch failed: {e}") from e
        status = result.get("status")
        if status != 200:
            raise PaymentGatewayError(
                f"MP payment fetch failed ({status}): {result.get('response')}",
                status,
            )
        return result["response"]

    return await asyncio.to_thread(_get_sync)
