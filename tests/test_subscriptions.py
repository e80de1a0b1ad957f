import pytest
from sqlalchemy.future import select

from storefront.models import Subscription, User
from storefront.services import mercadopago


MEMBER = {"email": "Socia@Example.com", "firstName": "Sofía", "lastName": "Socia"}


@pytest.fixture
def preapprovals(monkeypatch):
    created = []

    async def fake_create_subscription(payload):
        created.append(payload)
        return {"id": f"pre-{len(created)}", "init_point": "https://mp.test/preapproval"}

    monkeypatch.setattr(mercadopago, "create_subscription", fake_create_subscription)
    return created


async def _subscriptions(session_factory):
    async with session_factory() as db:
        return (await db.execute(select(Subscription))).scalars().all()


async def test_create_monthly_subscription(client, preapprovals, session_factory):
    response = await client.post(
        "/api/subscriptions/create",
        json={"plan": "premium", "billingCycle": "MONTHLY", "customer": MEMBER},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "initPoint": "https://mp.test/preapproval"}

    [subscription] = await _subscriptions(session_factory)
    assert (subscription.plan, subscription.billing_cycle, subscription.status) == ("PREMIUM", "MONTHLY", "PENDING")
    assert float(subscription.price) == 799
    assert subscription.mp_subscription_id == "pre-1"
    assert subscription.mp_payer_email == "socia@example.com"

    [payload] = preapprovals
    assert payload["reason"] == "Membresía Premium - Mensual"
    assert payload["external_reference"] == str(subscription.id)
    assert payload["payer_email"] == "socia@example.com"
    assert payload["auto_recurring"] == {
        "frequency": 1,
        "frequency_type": "months",
        "transaction_amount": 799,
        "currency_id": "MXN",
    }
    assert payload["back_url"] == "https://tienda.test/membresias/resultado"


async def test_annual_cycle_price(client, preapprovals):
    await client.post(
        "/api/subscriptions/create",
        json={"plan": "FAMILIAR", "billingCycle": "annual", "customer": MEMBER},
    )

    [payload] = preapprovals
    assert payload["reason"] == "Membresía Familiar - Anual"
    assert payload["auto_recurring"]["frequency"] == 12
    assert payload["auto_recurring"]["transaction_amount"] == 11990


async def test_invalid_requests(client, preapprovals):
    bad_plan = await client.post("/api/subscriptions/create", json={"plan": "ORO", "customer": MEMBER})
    no_email = await client.post("/api/subscriptions/create", json={"plan": "BASICO", "customer": {}})

    assert bad_plan.json() == {"error": "Plan inválido"}
    assert no_email.json() == {"error": "Email es requerido"}
    assert preapprovals == []


async def test_one_open_subscription_per_customer(client, preapprovals):
    body = {"plan": "BASICO", "customer": MEMBER}
    await client.post("/api/subscriptions/create", json=body)

    response = await client.post("/api/subscriptions/create", json=body)

    assert response.status_code == 409
    assert response.json() == {"error": "Ya tienes una suscripción activa"}
    assert len(preapprovals) == 1


async def test_gateway_failure_cancels_subscription(client, monkeypatch, session_factory):
    async def failing_create_subscription(payload):
        raise mercadopago.PaymentGatewayError("MP preapproval creation failed (400)", 400)

    monkeypatch.setattr(mercadopago, "create_subscription", failing_create_subscription)

    response = await client.post("/api/subscriptions/create", json={"plan": "BASICO", "customer": MEMBER})

    assert response.status_code == 500
    assert response.json() == {"error": "Error al crear la suscripción"}
    [subscription] = await _subscriptions(session_factory)
    assert subscription.status == "CANCELLED"


async def test_status(client, add):
    member = await add(User(email="socia@example.com"))
    await add(
        Subscription(user_id=member.id, plan="BASICO", status="CANCELLED", price=499),
        Subscription(user_id=member.id, plan="PREMIUM", billing_cycle="ANNUAL", status="AUTHORIZED", price=7990),
    )

    response = await client.get("/api/subscriptions/status", params={"email": "SOCIA@example.com"})

    assert response.json() == {
        "subscription": {
            "plan": "PREMIUM",
            "billingCycle": "ANNUAL",
            "status": "AUTHORIZED",
            "price": 7990,
            "startDate": None,
        }
    }


async def test_status_without_subscription(client):
    missing_email = await client.get("/api/subscriptions/status")
    unknown = await client.get("/api/subscriptions/status", params={"email": "nadie@example.com"})

    assert missing_email.status_code == 400
    assert missing_email.json() == {"error": "Email es requerido"}
    assert unknown.json() == {"subscription": None}
