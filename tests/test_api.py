"""
End-to-end tests for the HTTP API over in-memory services
"""

import json

import pytest
from httpx import AsyncClient, ASGITransport

from api.auth import create_access_token
from api.config.settings import reset_settings
from api.main import create_app
from api.services.container import ServiceContainer
from src.models.catalog import Product, UserContact, UserRole
from src.orders.gateway import sign_payload
from tests.factories import ADMIN, ALICE, BOB, CAROL

WEBHOOK_SECRET = "whsec_test"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def container(users, catalog):
    return ServiceContainer.in_memory(users=users, catalog=catalog, webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
async def client(container):
    transport = ASGITransport(app=create_app(container))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def auth(user_id, role=UserRole.USER):
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


async def propose(client, initiator=ALICE, receiver=BOB, offered=("p1",), requested=("p2",)):
    resp = await client.post("/api/trades", headers=auth(initiator), json={
        "receiver_id": receiver,
        "offered_product_ids": list(offered),
        "requested_product_ids": list(requested),
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


async def disputed_trade(client):
    trade = await propose(client)
    await client.post(f"/api/trades/{trade['id']}/accept", headers=auth(BOB))
    await client.post(f"/api/trades/{trade['id']}/ship", headers=auth(ALICE), json={"carrier": "aras"})
    await client.post(f"/api/trades/{trade['id']}/ship", headers=auth(BOB), json={"carrier": "mng"})
    resp = await client.post(f"/api/trades/{trade['id']}/dispute", headers=auth(ALICE),
                             json={"reason": "damaged", "description": "Box crushed"})
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.mark.anyio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "Up and running!"}


@pytest.mark.anyio
async def test_missing_token_rejected(client: AsyncClient):
    resp = await client.get("/api/trades")
    assert resp.status_code == 401
    assert resp.json()["code"] == "unauthenticated"


@pytest.mark.anyio
async def test_invalid_token_rejected(client: AsyncClient):
    resp = await client.get("/api/trades", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Geçersiz oturum"


@pytest.mark.anyio
async def test_public_route_without_token(client: AsyncClient):
    resp = await client.get("/api/trades/dispute-reasons")
    assert resp.status_code == 200
    assert "damaged" in resp.json()


@pytest.mark.anyio
async def test_trade_lifecycle(client: AsyncClient):
    trade = await propose(client)
    assert trade["status"] == "pending"
    assert trade["response_deadline"] is not None

    resp = await client.post(f"/api/trades/{trade['id']}/accept", headers=auth(BOB))
    assert resp.json()["status"] == "accepted"

    for user, carrier in ((ALICE, "aras"), (BOB, "yurtici")):
        resp = await client.post(f"/api/trades/{trade['id']}/ship", headers=auth(user), json={"carrier": carrier})
        assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "shipped"
    assert len(resp.json()["shipments"]) == 2

    await client.post(f"/api/trades/{trade['id']}/confirm", headers=auth(ALICE))
    resp = await client.post(f"/api/trades/{trade['id']}/confirm", headers=auth(BOB))
    assert resp.json()["status"] == "completed"

    mine = await client.get("/api/trades", headers=auth(BOB), params={"status": "completed"})
    assert [t["id"] for t in mine.json()] == [trade["id"]]


@pytest.mark.anyio
async def test_outsider_cannot_view_trade(client: AsyncClient):
    trade = await propose(client)
    resp = await client.get(f"/api/trades/{trade['id']}", headers=auth(CAROL))
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"


@pytest.mark.anyio
async def test_only_receiver_accepts(client: AsyncClient):
    trade = await propose(client)
    resp = await client.post(f"/api/trades/{trade['id']}/accept", headers=auth(ALICE))
    assert resp.status_code == 403


@pytest.mark.anyio
async def test_counter_offer(client: AsyncClient):
    trade = await propose(client)
    resp = await client.post(f"/api/trades/{trade['id']}/counter", headers=auth(BOB),
                             json={"offered_product_ids": ["p3"]})
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["original"]["status"] == "countered"
    assert body["counter"]["parent_trade_id"] == trade["id"]
    assert body["counter"]["initiator_id"] == BOB


@pytest.mark.anyio
async def test_unknown_trade(client: AsyncClient):
    resp = await client.get("/api/trades/does-not-exist", headers=auth(ALICE))
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_validation_error_shape(client: AsyncClient):
    resp = await client.post("/api/trades", headers=auth(ALICE), json={
        "receiver_id": ALICE, "offered_product_ids": ["p1"], "requested_product_ids": ["p2"],
    })
    assert resp.status_code == 400
    assert set(resp.json()) >= {"detail", "code"}


@pytest.mark.anyio
async def test_admin_routes_require_admin(client: AsyncClient):
    resp = await client.get("/api/admin/trades", headers=auth(ALICE))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Bu işlem için yönetici yetkisi gerekli"


@pytest.mark.anyio
async def test_admin_resolves_dispute_and_audit_is_queryable(client: AsyncClient):
    trade = await disputed_trade(client)
    assert trade["dispute"]["reason"] == "damaged"

    listing = await client.get("/api/admin/trades", headers=auth(ADMIN, UserRole.ADMIN),
                               params={"status": "disputed"})
    assert listing.json()["total"] == 1
    assert listing.json()["meta"]["total_pages"] == 1

    resp = await client.post(f"/api/admin/trades/{trade['id']}/resolve", headers=auth(ADMIN, UserRole.ADMIN),
                             json={"resolution": "cancel", "note": "Refund both sides"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "cancelled"
    assert resp.json()["dispute"]["resolution"] == "cancel"

    logs = await client.get("/api/admin/audit-logs", headers=auth(ADMIN, UserRole.ADMIN),
                            params={"action": "trade_resolve"})
    entries = logs.json()["data"]
    assert len(entries) == 1
    assert entries[0]["entity_id"] == trade["id"]
    assert entries[0]["new_values"]["note"] == "Refund both sides"


@pytest.mark.anyio
async def test_unsupported_resolution(client: AsyncClient):
    trade = await disputed_trade(client)
    resp = await client.post(f"/api/admin/trades/{trade['id']}/resolve", headers=auth(ADMIN, UserRole.ADMIN),
                             json={"resolution": "favor_initiator"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "unsupported_resolution"

    still = await client.get(f"/api/admin/trades/{trade['id']}", headers=auth(ADMIN, UserRole.ADMIN))
    assert still.json()["status"] == "disputed"


@pytest.mark.anyio
async def test_order_flow_with_signed_callback(client: AsyncClient, container):
    resp = await client.post("/api/orders", headers=auth(ALICE), json={"product_id": "p2"})
    assert resp.status_code == 201, resp.text
    order = resp.json()
    assert order["status"] == "pending_payment"

    body = json.dumps({"orderId": order["id"], "paymentId": "pay-1", "status": "success"}).encode("utf-8")
    unsigned = await client.post("/api/orders/payment-callback", content=body)
    assert unsigned.status_code == 401

    paid = await client.post("/api/orders/payment-callback", content=body,
                             headers={"X-Payment-Signature": sign_payload(body, WEBHOOK_SECRET)})
    assert paid.status_code == 200, paid.text
    assert paid.json()["status"] == "paid"

    shipped = await client.post(f"/api/orders/{order['id']}/ship", headers=auth(BOB), json={"carrier": "aras"})
    assert shipped.json()["status"] == "shipped"
    await client.post(f"/api/orders/{order['id']}/delivered", headers=auth(ALICE))
    done = await client.post(f"/api/orders/{order['id']}/confirm", headers=auth(ALICE))
    assert done.json()["status"] == "completed"
    assert container.catalog.get_products(["p2"])[0].status.value == "sold"


@pytest.mark.anyio
async def test_rating_after_delivery(client: AsyncClient):
    order = (await client.post("/api/orders", headers=auth(ALICE), json={"product_id": "p2"})).json()

    early = await client.post("/api/ratings/users", headers=auth(ALICE),
                              json={"receiver_id": BOB, "order_id": order["id"], "score": 5})
    assert early.status_code == 400

    body = json.dumps({"orderId": order["id"], "paymentId": "pay-1", "status": "success"}).encode("utf-8")
    await client.post("/api/orders/payment-callback", content=body,
                      headers={"X-Payment-Signature": sign_payload(body, WEBHOOK_SECRET)})
    await client.post(f"/api/orders/{order['id']}/ship", headers=auth(BOB), json={"carrier": "aras"})
    await client.post(f"/api/orders/{order['id']}/delivered", headers=auth(ALICE))

    created = await client.post("/api/ratings/users", headers=auth(ALICE),
                                json={"receiver_id": BOB, "order_id": order["id"], "score": 5})
    assert created.status_code == 201, created.text

    duplicate = await client.post("/api/ratings/users", headers=auth(ALICE),
                                  json={"receiver_id": BOB, "order_id": order["id"], "score": 4})
    assert duplicate.status_code == 400
    assert duplicate.json()["code"] == "conflict"

    stats = await client.get(f"/api/ratings/users/{BOB}/stats")
    assert stats.status_code == 200
    assert stats.json()["average_score"] == 5.0


@pytest.mark.anyio
async def test_notification_inbox(client: AsyncClient):
    await propose(client)

    count = await client.get("/api/notifications/unread-count", headers=auth(BOB))
    assert count.json()["count"] == 1

    inbox = await client.get("/api/notifications", headers=auth(BOB))
    notification = inbox.json()["notifications"][0]
    assert notification["type"] == "trade_received"

    read = await client.post(f"/api/notifications/{notification['id']}/read", headers=auth(BOB))
    assert read.json() == {"success": True, "updated": 1}

    missing = await client.post("/api/notifications/unknown/read", headers=auth(BOB))
    assert missing.status_code == 404

    cleared = await client.post("/api/notifications/read-all", headers=auth(BOB))
    assert cleared.json()["updated"] == 0


@pytest.mark.anyio
async def test_push_token_and_provider_status(client: AsyncClient):
    resp = await client.post("/api/notifications/push-token", headers=auth(BOB),
                             json={"token": "ExponentPushToken[abc]", "platform": "ios"})
    assert resp.json() == {"success": True}

    forbidden = await client.get("/api/notifications/providers", headers=auth(BOB))
    assert forbidden.status_code == 403

    status = await client.get("/api/notifications/providers", headers=auth(ADMIN, UserRole.ADMIN))
    assert status.json() == {"email": False, "push": False, "sms": False}
