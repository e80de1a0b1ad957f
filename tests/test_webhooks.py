import pytest
from sqlalchemy.future import select

from storefront.models import Order, Subscription, User
from storefront.routes import webhooks
from storefront.services import mercadopago


@pytest.fixture
def confirmations(monkeypatch):
    sent = []
    monkeypatch.setattr(webhooks, "send_payment_confirmed_email", sent.append)
    return sent


@pytest.fixture
def payments(monkeypatch):
    """Payments the fake gateway knows about, keyed by id."""
    known = {}

    async def fake_get_payment(payment_id):
        if payment_id not in known:
            raise mercadopago.PaymentGatewayError("MP payment fetch failed (404)", 404)
        return known[payment_id]

    monkeypatch.setattr(mercadopago, "get_payment", fake_get_payment)
    return known


@pytest.fixture
async def pending_order(add):
    buyer = await add(User(email="comprador@example.com", first_name="Berta"))
    return await add(Order(
        order_number="DEL-MP-0001",
        user_id=buyer.id,
        payment_method="mercadopago",
        subtotal=420,
        total=570,
    ))


async def _order(session_factory, order_number="DEL-MP-0001"):
    async with session_factory() as db:
        result = await db.execute(select(Order).filter(Order.order_number == order_number))
        return result.scalars().first()


async def test_approved_payment_marks_order_paid(client, pending_order, payments, confirmations, session_factory):
    payments["991"] = {"status": "approved", "external_reference": "DEL-MP-0001"}

    response = await client.post("/api/webhooks/mercadopago", json={"type": "payment", "data": {"id": "991"}})

    assert response.status_code == 200
    assert response.json() == {"received": True}
    order = await _order(session_factory)
    assert (order.payment_status, order.status, order.mp_payment_id) == ("PAID", "CONFIRMED", "991")
    [email] = confirmations
    assert email["order_number"] == "DEL-MP-0001"
    assert email["customer_email"] == "comprador@example.com"


async def test_repeated_notification_sends_one_confirmation(client, pending_order, payments, confirmations):
    payments["991"] = {"status": "approved", "external_reference": "DEL-MP-0001"}

    for _ in range(2):
        await client.post("/api/webhooks/mercadopago", json={"type": "payment", "data": {"id": "991"}})

    assert len(confirmations) == 1


@pytest.mark.parametrize("gateway_status, expected", [
    ("rejected", ("FAILED", "CANCELLED")),
    ("refunded", ("REFUNDED", "REFUNDED")),
    ("in_process", ("PENDING", "PENDING")),
    ("something_new", ("PENDING", "PENDING")),
])
async def test_payment_status_mapping(client, pending_order, payments, confirmations, session_factory,
                                      gateway_status, expected):
    payments["77"] = {"status": gateway_status, "external_reference": "DEL-MP-0001"}

    await client.post("/api/webhooks/mercadopago", json={"type": "payment", "data": {"id": 77}})

    order = await _order(session_factory)
    assert (order.payment_status, order.status) == expected
    assert confirmations == []


async def test_query_string_notification(client, pending_order, payments, session_factory):
    payments["55"] = {"status": "approved", "external_reference": "DEL-MP-0001"}

    await client.post("/api/webhooks/mercadopago?topic=payment&id=55")

    assert (await _order(session_factory)).payment_status == "PAID"


async def test_failures_still_acknowledge(client, pending_order, payments, session_factory):
    payments["1"] = {"status": "approved"}
    payments["2"] = {"status": "approved", "external_reference": "DEL-NO-EXISTE"}

    responses = [
        await client.post("/api/webhooks/mercadopago", json={"type": "payment", "data": {"id": "1"}}),
        await client.post("/api/webhooks/mercadopago", json={"type": "payment", "data": {"id": "2"}}),
        await client.post("/api/webhooks/mercadopago", json={"type": "payment", "data": {"id": "404"}}),
        await client.post("/api/webhooks/mercadopago", json={"type": "payment"}),
        await client.post("/api/webhooks/mercadopago", content=b"not json"),
        await client.post("/api/webhooks/mercadopago", json={"type": "merchant_order", "data": {"id": "3"}}),
    ]

    assert all(r.status_code == 200 and r.json() == {"received": True} for r in responses)
    assert (await _order(session_factory)).payment_status == "PENDING"


@pytest.fixture
async def pending_subscription(add):
    member = await add(User(email="socia@example.com"))
    return await add(Subscription(
        user_id=member.id,
        plan="PREMIUM",
        status="PENDING",
        price=799,
        mp_subscription_id="pre-1",
    ))


def fake_preapprovals(monkeypatch, preapproval):
    async def fake_get_subscription(preapproval_id):
        return dict(preapproval, id=preapproval_id)

    monkeypatch.setattr(mercadopago, "get_subscription", fake_get_subscription)


async def _subscription(session_factory, subscription_id):
    async with session_factory() as db:
        return await db.get(Subscription, subscription_id)


async def test_authorized_preapproval_activates_subscription(client, pending_subscription, monkeypatch, session_factory):
    fake_preapprovals(monkeypatch, {"status": "authorized"})

    await client.post(
        "/api/webhooks/mercadopago",
        json={"type": "subscription_preapproval", "data": {"id": "pre-1"}},
    )

    subscription = await _subscription(session_factory, pending_subscription.id)
    assert subscription.status == "AUTHORIZED"
    assert subscription.start_date is not None


async def test_preapproval_found_by_external_reference(client, add, monkeypatch, session_factory):
    member = await add(User(email="otra@example.com"))
    subscription = await add(Subscription(user_id=member.id, plan="BASICO", status="PENDING", price=499))
    fake_preapprovals(monkeypatch, {"status": "cancelled", "external_reference": str(subscription.id)})

    await client.post(
        "/api/webhooks/mercadopago",
        json={"type": "subscription_preapproval", "data": {"id": "pre-9"}},
    )

    stored = await _subscription(session_factory, subscription.id)
    assert stored.status == "CANCELLED"
    assert stored.mp_subscription_id == "pre-9"
    assert stored.start_date is None


async def test_unknown_preapproval_status_is_ignored(client, pending_subscription, monkeypatch, session_factory):
    fake_preapprovals(monkeypatch, {"status": "expired"})

    await client.post(
        "/api/webhooks/mercadopago",
        json={"type": "subscription_preapproval", "data": {"id": "pre-1"}},
    )

    assert (await _subscription(session_factory, pending_subscription.id)).status == "PENDING"
