"""
Contact Form Route

POST /api/contact validates the storefront contact form and writes the
submission to the log. Nothing is stored or emailed.
"""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from storefront.utils.validators import is_valid_email, sanitize_string

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["contact"])


class ContactMessage(BaseModel):
    nombre: str | None = None
    email: str | None = None
    telefono: str | None = None
    asunto: str | None = None
    mensaje: str | None = None


@router.post("")
async def submit_contact(payload: ContactMessage):
    nombre = sanitize_string(payload.nombre)
    email = (payload.email or "").strip().lower()
    telefono = sanitize_string(payload.telefono)
    asunto = sanitize_string(payload.asunto)
    mensaje = sanitize_string(payload.mensaje)

    if len(nombre) < 2:
        raise HTTPException(status_code=400, detail="El nombre es requerido")
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Email inválido")
    if not asunto:
        raise HTTPException(status_code=400, detail="El asunto es requerido")
    if len(mensaje) < 10:
        raise HTTPException(status_code=400, detail="El mensaje debe tener al menos 10 caracteres")

    logger.info(
        "Nuevo mensaje de contacto\n"
        f"Nombre: {nombre}\n"
        f"Email: {email}\n"
        f"Teléfono: {telefono or 'No proporcionado'}\n"
        f"Asunto: {asunto}\n"
        f"Mensaje: {mensaje}"
    )

    return {"success": True, "message": "Mensaje enviado correctamente. Te responderemos pronto."}
