from storefront.models import SiteConfig


async def test_upsert_and_list(admin_client, add):
    await add(SiteConfig(key="shipping_cost", value="150", type="number"))

    response = await admin_client.put(
        "/api/admin/config",
        json={"configs": [
            {"key": "shipping_cost", "value": 99, "type": "text"},
            {"key": "maintenance_mode", "value": True, "type": "boolean"},
            {"key": "store_name", "value": "<b>Delicias</b>"},
            {"key": "", "value": "ignored"},
            {"key": "no_value"},
        ]},
    )

    assert response.status_code == 200
    saved = [(c["key"], c["value"], c["type"]) for c in response.json()]
    assert saved == [
        ("shipping_cost", "99", "number"),
        ("maintenance_mode", "true", "boolean"),
        ("store_name", "Delicias", "text"),
    ]

    listed = await admin_client.get("/api/admin/config")
    assert [c["key"] for c in listed.json()] == ["maintenance_mode", "shipping_cost", "store_name"]


async def test_configs_must_be_a_list(admin_client):
    response = await admin_client.put("/api/admin/config", json={"configs": {"key": "a", "value": "b"}})

    assert response.status_code == 400
    assert response.json() == {"error": "Se requiere un array de configuraciones"}


async def test_stored_value_reaches_public_config(admin_client):
    await admin_client.put("/api/admin/config", json={"configs": [{"key": "shipping_cost", "value": "80"}]})

    response = await admin_client.get("/api/config", params={"keys": "shipping_cost"})

    assert response.json() == {"shipping_cost": "80"}
