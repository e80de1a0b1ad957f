import logging

import pytest


MESSAGE = {
    "nombre": "Lucía",
    "email": "Lucia@Example.com",
    "asunto": "Pedido mayoreo",
    "mensaje": "Quisiera cotizar 20 kg de nuez pecana.",
}


async def test_contact_is_logged(client, caplog):
    with caplog.at_level(logging.INFO, logger="storefront.routes.contact"):
        response = await client.post("/api/contact", json=MESSAGE)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Mensaje enviado correctamente. Te responderemos pronto.",
    }
    assert "lucia@example.com" in caplog.text
    assert "No proporcionado" in caplog.text


@pytest.mark.parametrize("field, value, error", [
    ("nombre", "L", "El nombre es requerido"),
    ("email", "lucia", "Email inválido"),
    ("asunto", "  ", "El asunto es requerido"),
    ("mensaje", "Hola", "El mensaje debe tener al menos 10 caracteres"),
])
async def test_contact_validation(client, field, value, error):
    response = await client.post("/api/contact", json=dict(MESSAGE, **{field: value}))

    assert response.status_code == 400
    assert response.json() == {"error": error}
