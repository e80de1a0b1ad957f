"""
Email Service for Order Notifications

This module sends transactional emails through the Resend API:
- Order received (to the customer)
- New order notification (to the store)
- Payment confirmed (to the customer, from the payment webhook)

Emails are sent from FastAPI background tasks after the response has been
returned. A failed send is logged and never reaches the customer.

When RESEND_API_KEY is not configured (local development, tests) the
email is written to the log instead of being sent.
"""

import logging

import resend

from storefront.config import settings
from storefront.utils.text import format_mxn

logger = logging.getLogger(__name__)

FROM_NAME = "Las Delicias del Campo"

PAYMENT_METHOD_LABELS = {
    "mercadopago": "Mercado Pago",
    "whatsapp": "WhatsApp",
    "transfer": "Transferencia Bancaria",
}

PAYMENT_NOTES = {
    "mercadopago": "Estamos procesando tu pago con Mercado Pago. Te notificaremos cuando se confirme.",
    "whatsapp": "Te contactaremos por WhatsApp para confirmar tu pedido y coordinar el pago.",
}
TRANSFER_NOTE = "Te enviaremos los datos bancarios para realizar tu transferencia."


def payment_method_label(method: str) -> str:
    return PAYMENT_METHOD_LABELS.get(method, method)


def build_order_email_data(order) -> dict:
    """
    Collect what the templates need from an order.

    Args:
        order: Order with user, items and shipping_address loaded
    """
    user = order.user
    address = order.shipping_address
    name_parts = [user.first_name, user.last_name] if user else []
    return {
        "order_number": order.order_number,
        "customer_email": user.email if user else "",
        "customer_name": " ".join(p for p in name_parts if p),
        "customer_phone": (user.phone or "") if user else "",
        "payment_method": order.payment_method or "whatsapp",
        "items": [
            {
                "name": item.name,
                "quantity": item.quantity,
                "price": float(item.price),
                "total": float(item.total),
            }
            for item in order.items
        ],
        "subtotal": float(order.subtotal or 0),
        "shipping_cost": float(order.shipping_cost or 0),
        "discount": float(order.discount or 0),
        "total": float(order.total or 0),
        "shipping_address": {
            "street": address.street if address else "",
            "city": address.city if address else "",
            "state": address.state if address else "",
            "postal_code": address.postal_code if address else "",
        },
        "notes": order.notes,
    }


def _items_html(items: list[dict]) -> str:
    return "".join(
        f"<tr><td>{item['name']}</td>"
        f"<td style=\"text-align:center\">{item['quantity']}</td>"
        f"<td style=\"text-align:right\">${format_mxn(item['total'])}</td></tr>"
        for item in items
    )


def _address_html(address: dict) -> str:
    return (
        f"{address['street']}<br>"
        f"{address['city']}, {address['state']} {address['postal_code']}"
    )


def build_order_received_html(data: dict) -> str:
    note = PAYMENT_NOTES.get(data["payment_method"], TRANSFER_NOTE)
    shipping = "Gratis" if data["shipping_cost"] == 0 else f"${format_mxn(data['shipping_cost'])}"
    discount_row = ""
    if data["discount"] > 0:
        discount_row = f"<tr><td>Descuento</td><td style=\"text-align:right\">-${format_mxn(data['discount'])}</td></tr>"
    notes = f"<h3>Notas</h3><p>{data['notes']}</p>" if data["notes"] else ""

    return f"""<!DOCTYPE html>
<html><head><meta charset="utf-8"></head>
<body style="font-family: sans-serif; background-color: #f5f3ef;">
<h1 style="color: #3d6b2e;">{FROM_NAME}</h1>
<h2>Pedido Recibido</h2>
<p>Hola {data['customer_name']}, hemos recibido tu pedido <strong>#{data['order_number']}</strong>.</p>
<p><strong>Método de pago:</strong> {payment_method_label(data['payment_method'])}<br>{note}</p>
<table width="100%">
<tr><th>Producto</th><th>Cant.</th><th>Total</th></tr>
{_items_html(data['items'])}
</table>
<table width="100%">
<tr><td>Subtotal</td><td style="text-align:right">${format_mxn(data['subtotal'])}</td></tr>
<tr><td>Envío</td><td style="text-align:right">{shipping}</td></tr>
{discount_row}
<tr><td><strong>Total</strong></td><td style="text-align:right"><strong>${format_mxn(data['total'])} MXN</strong></td></tr>
</table>
<h3>Dirección de envío</h3>
<p>{_address_html(data['shipping_address'])}</p>
{notes}
<p style="color: #8b8579;">¿Preguntas? Contáctanos por WhatsApp o a {settings.FROM_EMAIL}</p>
</body></html>"""


def build_payment_confirmed_html(data: dict) -> str:
    return f"""<!DOCTYPE html>
<html><head><meta charset="utf-8"></head>
<body style="font-family: sans-serif; background-color: #f5f3ef;">
<h1 style="color: #3d6b2e;">{FROM_NAME}</h1>
<h2>Pago Confirmado</h2>
<p>Hola {data['customer_name']}, tu pago para el pedido <strong>#{data['order_number']}</strong> ha sido confirmado.</p>
<p><strong>Estamos preparando tu pedido para envío.</strong></p>
<table width="100%">
<tr><th>Producto</th><th>Cant.</th><th>Total</th></tr>
{_items_html(data['items'])}
</table>
<p><strong>Total pagado: ${format_mxn(data['total'])} MXN</strong></p>
<h3>Dirección de envío</h3>
<p>{_address_html(data['shipping_address'])}</p>
</body></html>"""


def build_admin_notification_html(data: dict) -> str:
    notes = f"<p><strong>Notas:</strong> {data['notes']}</p>" if data["notes"] else ""
    return f"""<!DOCTYPE html>
<html><head><meta charset="utf-8"></head>
<body style="font-family: sans-serif;">
<h1>Nuevo Pedido #{data['order_number']}</h1>
<h3>Datos del cliente</h3>
<p>Nombre: {data['customer_name']}<br>
Email: {data['customer_email']}<br>
Teléfono: {data['customer_phone']}<br>
Método de pago: {payment_method_label(data['payment_method'])}</p>
<h3>Productos</h3>
<table width="100%">
<tr><th>Producto</th><th>Cant.</th><th>Total</th></tr>
{_items_html(data['items'])}
</table>
<p><strong>Total: ${format_mxn(data['total'])} MXN</strong></p>
<p><strong>Envío a:</strong> {_address_html(data['shipping_address'])}</p>
{notes}
</body></html>"""


def send_email(to_email: str, subject: str, html: str):
    """
    Send one email through Resend, or log it when no API key is set.

    Raises:
        Exception: If the Resend call fails (network error, invalid key, ...)
    """
    if not settings.RESEND_API_KEY:
        logger.info(f"Email to {to_email} not sent (RESEND_API_KEY unset): {subject}")
        return

    resend.api_key = settings.RESEND_API_KEY
    params = {
        "from": f"{FROM_NAME} <{settings.FROM_EMAIL}>",
        "to": [to_email],
        "subject": subject,
        "html": html,
    }
    try:
        email = resend.Emails.send(params)
        logger.info(f"Email sent to {to_email}: {email}")
    except Exception as e:
        logger.error(f"Error sending email to {to_email}: {e}")
        raise


def send_order_emails(data: dict):
    """
    Background task: order received (customer) + new order (store).

    Failures are logged only; the order has already been created.
    """
    try:
        send_email(
            data["customer_email"],
            f"Pedido #{data['order_number']} recibido - {FROM_NAME}",
            build_order_received_html(data),
        )
        send_email(
            settings.FROM_EMAIL,
            f"Nuevo pedido #{data['order_number']} - ${format_mxn(data['total'])}",
            build_admin_notification_html(data),
        )
    except Exception:
        logger.exception(f"Error sending order emails for {data['order_number']}")


def send_payment_confirmed_email(data: dict):
    """Background task: payment confirmed (customer)."""
    try:
        send_email(
            data["customer_email"],
            f"Pago confirmado - Pedido #{data['order_number']} - {FROM_NAME}",
            build_payment_confirmed_html(data),
        )
    except Exception:
        logger.exception(f"Error sending payment confirmation for {data['order_number']}")
