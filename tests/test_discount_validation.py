from datetime import datetime, timedelta

from storefront.models import Discount


async def test_valid_percentage_code(client, add):
    await add(Discount(code="VERANO10", type="PERCENTAGE", value=10))

    response = await client.get("/api/discounts/validate", params={"code": "verano10", "subtotal": "450"})

    assert response.status_code == 200
    assert response.json() == {
        "valid": True,
        "discount": {
            "code": "VERANO10",
            "type": "PERCENTAGE",
            "value": 10,
            "discountAmount": 45,
            "description": "10% de descuento",
        },
    }


async def test_fixed_and_free_shipping_descriptions(client, add):
    await add(
        Discount(code="MENOS50", type="FIXED", value=50),
        Discount(code="ENVIO", type="FREE_SHIPPING"),
    )

    fixed = (await client.get("/api/discounts/validate", params={"code": "MENOS50", "subtotal": 30})).json()
    shipping = (await client.get("/api/discounts/validate", params={"code": "ENVIO", "subtotal": 30})).json()

    assert fixed["discount"]["discountAmount"] == 30
    assert fixed["discount"]["description"] == "$50 de descuento"
    assert shipping["discount"]["discountAmount"] == 0
    assert shipping["discount"]["description"] == "Envío gratis"


async def test_missing_code_and_bad_subtotal(client):
    no_code = await client.get("/api/discounts/validate", params={"subtotal": 100})
    no_subtotal = await client.get("/api/discounts/validate", params={"code": "X"})
    negative = await client.get("/api/discounts/validate", params={"code": "X", "subtotal": "-5"})
    text = await client.get("/api/discounts/validate", params={"code": "X", "subtotal": "mucho"})

    assert no_code.status_code == 400
    assert no_code.json() == {"valid": False, "message": "El código de descuento es requerido."}
    for response in (no_subtotal, negative, text):
        assert response.status_code == 400
        assert response.json() == {"valid": False, "message": "El subtotal debe ser un número positivo."}


async def test_unknown_code(client):
    response = await client.get("/api/discounts/validate", params={"code": "NADA", "subtotal": 100})

    assert response.status_code == 404
    assert response.json() == {"valid": False, "message": "El código de descuento no existe."}


async def test_rejection_messages(client, add):
    now = datetime.utcnow()
    await add(
        Discount(code="APAGADO", type="FIXED", value=10, active=False),
        Discount(code="FUTURO", type="FIXED", value=10, start_date=now + timedelta(days=3)),
        Discount(code="VENCIDO", type="FIXED", value=10, end_date=now - timedelta(days=3)),
        Discount(code="AGOTADO", type="FIXED", value=10, max_uses=5, used_count=5),
        Discount(code="MINIMO", type="FIXED", value=10, min_purchase=1500),
    )

    async def message(code):
        response = await client.get("/api/discounts/validate", params={"code": code, "subtotal": 500})
        assert response.status_code == 400
        return response.json()["message"]

    assert await message("APAGADO") == "Este código de descuento ya no está activo."
    assert await message("FUTURO") == "Este código de descuento aún no está vigente."
    assert await message("VENCIDO") == "Este código de descuento ha expirado."
    assert await message("AGOTADO") == "Este código de descuento ha alcanzado su límite de usos."
    assert await message("MINIMO") == "El pedido mínimo para este código es de $1,500 MXN."
