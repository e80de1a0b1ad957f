from storefront.models import Discount


async def test_create_percentage_discount(admin_client):
    response = await admin_client.post(
        "/api/admin/discounts",
        json={
            "code": " verano10 ",
            "type": "PERCENTAGE",
            "value": "10",
            "minPurchase": 300,
            "maxUses": "50",
            "startDate": "2026-06-01T00:00:00Z",
            "endDate": "2026-08-31",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["code"] == "VERANO10"
    assert body["value"] == 10
    assert body["minPurchase"] == 300
    assert body["maxUses"] == 50
    assert body["usedCount"] == 0
    assert body["active"] is True
    assert body["startDate"] == "2026-06-01T00:00:00"
    assert body["endDate"] == "2026-08-31T00:00:00"


async def test_percentage_over_100_is_rejected(admin_client):
    response = await admin_client.post(
        "/api/admin/discounts",
        json={"code": "MITAD", "type": "PERCENTAGE", "value": 150},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "El porcentaje de descuento no puede ser mayor a 100"}


async def test_value_rules(admin_client):
    missing = await admin_client.post("/api/admin/discounts", json={"code": "A", "type": "FIXED"})
    negative = await admin_client.post("/api/admin/discounts", json={"code": "B", "type": "FIXED", "value": -5})
    shipping = await admin_client.post("/api/admin/discounts", json={"code": "ENVIO", "type": "FREE_SHIPPING"})

    assert missing.json() == {"error": "El valor del descuento es requerido y debe ser positivo"}
    assert negative.status_code == 400
    assert shipping.status_code == 201
    assert shipping.json()["value"] is None


async def test_code_and_type_required(admin_client, add):
    await add(Discount(code="EXISTE", type="FIXED", value=50))

    no_code = await admin_client.post("/api/admin/discounts", json={"type": "FIXED", "value": 5})
    bad_type = await admin_client.post("/api/admin/discounts", json={"code": "X", "type": "BOGO", "value": 5})
    duplicate = await admin_client.post("/api/admin/discounts", json={"code": "existe", "type": "FIXED", "value": 5})
    bad_date = await admin_client.post(
        "/api/admin/discounts",
        json={"code": "FECHA", "type": "FIXED", "value": 5, "endDate": "mañana"},
    )

    assert no_code.json() == {"error": "El código de descuento es requerido"}
    assert bad_type.json() == {
        "error": "Tipo de descuento inválido. Valores permitidos: PERCENTAGE, FIXED, FREE_SHIPPING"
    }
    assert duplicate.json() == {"error": "Ya existe un descuento con ese código"}
    assert bad_date.json() == {"error": "Fecha inválida"}


async def test_update_checks_resulting_type_and_value(admin_client, add):
    discount = await add(Discount(code="FIJO200", type="FIXED", value=200))

    switched = await admin_client.put(f"/api/admin/discounts/{discount.id}", json={"type": "PERCENTAGE"})
    assert switched.status_code == 400
    assert switched.json() == {"error": "El porcentaje de descuento no puede ser mayor a 100"}

    response = await admin_client.put(
        f"/api/admin/discounts/{discount.id}",
        json={"type": "PERCENTAGE", "value": 20, "active": False},
    )
    body = response.json()
    assert (body["type"], body["value"], body["active"], body["code"]) == ("PERCENTAGE", 20, False, "FIJO200")


async def test_list_get_delete(admin_client, add):
    first, second = await add(
        Discount(code="UNO", type="FIXED", value=10),
        Discount(code="DOS", type="FIXED", value=20),
    )

    listed = await admin_client.get("/api/admin/discounts")
    assert {d["code"] for d in listed.json()} == {"UNO", "DOS"}

    assert (await admin_client.get(f"/api/admin/discounts/{second.id}")).json()["code"] == "DOS"
    assert (await admin_client.get("/api/admin/discounts/abc")).json() == {"error": "ID de descuento inválido"}

    deleted = await admin_client.delete(f"/api/admin/discounts/{first.id}")
    assert deleted.json() == {"message": "Descuento eliminado correctamente"}
    missing = await admin_client.get(f"/api/admin/discounts/{first.id}")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Descuento no encontrado"}
