from storefront.models import Order, User


async def test_list_users_with_order_counts(admin_client, customer_user, add):
    await add(
        Order(order_number="DEL-A", user_id=customer_user.id, total=100),
        Order(order_number="DEL-B", user_id=customer_user.id, total=200),
    )

    response = await admin_client.get("/api/admin/users")

    users = {u["email"]: u for u in response.json()}
    assert users["cliente@example.com"]["orderCount"] == 2
    assert users["admin@example.com"]["orderCount"] == 0
    assert users["cliente@example.com"]["hasPassword"] is True
    assert all("passwordHash" not in u and "password_hash" not in u for u in users.values())


async def test_get_user_with_recent_orders(admin_client, customer_user, add):
    await add(*[
        Order(order_number=f"DEL-{i:02d}", user_id=customer_user.id, total=i)
        for i in range(12)
    ])

    response = await admin_client.get(f"/api/admin/users/{customer_user.id}")

    body = response.json()
    assert body["orderCount"] == 12
    assert len(body["orders"]) == 10
    assert set(body["orders"][0]) == {"id", "orderNumber", "status", "paymentStatus", "total", "createdAt"}


async def test_update_user(admin_client, customer_user):
    response = await admin_client.put(
        f"/api/admin/users/{customer_user.id}",
        json={"firstName": "Carlota", "phone": "", "email": "CARLOTA@example.com", "role": "ADMIN"},
    )

    body = response.json()
    assert body["firstName"] == "Carlota"
    assert body["lastName"] == "Cliente"
    assert body["phone"] is None
    assert body["email"] == "carlota@example.com"
    assert body["role"] == "ADMIN"


async def test_update_user_validations(admin_client, customer_user):
    url = f"/api/admin/users/{customer_user.id}"

    bad_email = await admin_client.put(url, json={"email": "no-es-email"})
    taken = await admin_client.put(url, json={"email": "admin@example.com"})
    bad_role = await admin_client.put(url, json={"role": "OWNER"})
    empty = await admin_client.put(url, json={})

    assert bad_email.json() == {"error": "Email inválido"}
    assert taken.json() == {"error": "Ya existe un usuario con ese email"}
    assert bad_role.json() == {"error": "Rol inválido. Valores permitidos: CUSTOMER, ADMIN, SUPER_ADMIN"}
    assert empty.json() == {"error": "No se proporcionaron campos para actualizar"}
    assert (await admin_client.put("/api/admin/users/999", json={"firstName": "X"})).status_code == 404


async def test_only_super_admin_can_delete(admin_client, customer_user):
    response = await admin_client.delete(f"/api/admin/users/{customer_user.id}")

    assert response.status_code == 403
    assert response.json() == {"error": "Solo SUPER_ADMIN puede eliminar usuarios"}


async def test_anonymous_delete_is_forbidden(client, customer_user):
    response = await client.delete(f"/api/admin/users/{customer_user.id}")

    assert response.status_code == 403


async def test_super_admin_deletes_user(super_admin_client, customer_user, session_factory):
    response = await super_admin_client.delete(f"/api/admin/users/{customer_user.id}")

    assert response.json() == {"message": "Usuario eliminado correctamente"}
    async with session_factory() as db:
        assert await db.get(User, customer_user.id) is None


async def test_super_admin_cannot_delete_itself(super_admin_client, super_admin):
    response = await super_admin_client.delete(f"/api/admin/users/{super_admin.id}")

    assert response.status_code == 400
    assert response.json() == {"error": "No puedes eliminarte a ti mismo"}
