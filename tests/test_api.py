"""HTTP surface tests via TestClient."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from bookstore.api import create_app
from bookstore.api.deps import get_identity_client, get_lock_service, get_push_sender_factory
from bookstore.data.database import get_db
from bookstore.repos.outbox_repo import OutboxRepo
from bookstore.repos.push_subscription_repo import PushSubscriptionRepo
from bookstore.services.notification_service import NEW_BOOK_ALERT, OPERATOR_ALERT, ORDER_MESSAGE
from bookstore.services.push_sender import GONE, WebPushSender
from tests.fakes import FakeIdentityClient, FakePushSender

READER = {"Authorization": "Bearer reader-token"}
OTHER = {"Authorization": "Bearer other-token"}
OPERATOR = {"Authorization": "Bearer operator-token"}

CHECKOUT_FORM = {
    "customer_name": "Ada Lovelace",
    "customer_email": "ada@example.com",
    "shipping_address": "whatsapp",
}


@pytest.fixture()
def push():
    return FakePushSender()


@pytest.fixture()
def app(session_factory, push):
    app = create_app()

    def override_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_identity_client] = lambda: FakeIdentityClient()
    app.dependency_overrides[get_lock_service] = lambda: None
    app.dependency_overrides[get_push_sender_factory] = lambda: (lambda: push)
    return app


@pytest.fixture()
def client(app):
    return TestClient(app)


def _add(client, book_id, quantity=1, headers=READER):
    response = client.post("/cart", json={"book_id": book_id, "quantity": quantity}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def _place_order(client, make_book):
    a = make_book(title="A", price="10.00")
    b = make_book(title="B", price="5.00")
    _add(client, a.id, 2)
    _add(client, b.id, 1)
    response = client.post("/checkout", json=CHECKOUT_FORM, headers=READER)
    assert response.status_code == 200, response.text
    return response.json()


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestAuth:
    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer nope"}, {"Authorization": "Basic abc"}])
    def test_cart_requires_user(self, client, headers):
        assert client.get("/cart", headers=headers).status_code == 401

    def test_admin_requires_operator(self, client):
        assert client.get("/admin/orders", headers=READER).status_code == 403
        assert client.get("/admin/orders", headers=OPERATOR).status_code == 200


class TestCartEndpoints:
    def test_add_update_remove(self, client, make_book):
        book = make_book(price="4.50")

        cart = _add(client, book.id, 2)
        assert cart["total_amount"] == "9.00"
        assert cart["total_items"] == 2

        cart = client.put("/cart", json={"book_id": book.id, "quantity": 3}, headers=READER).json()
        assert cart["items"][0]["quantity"] == 3

        cart = client.delete(f"/cart?book_id={book.id}", headers=READER).json()
        assert cart["items"] == []

    def test_delete_without_book_clears(self, client, make_book):
        _add(client, make_book(title="A").id)
        _add(client, make_book(title="B").id)

        cart = client.delete("/cart", headers=READER).json()
        assert cart["total_items"] == 0

    def test_unknown_book(self, client):
        response = client.post("/cart", json={"book_id": 999}, headers=READER)
        assert response.status_code == 404

    def test_unavailable_book(self, client, make_book):
        book = make_book(status="out_of_stock")
        response = client.post("/cart", json={"book_id": book.id}, headers=READER)
        assert response.status_code == 400


class TestCheckoutEndpoint:
    def test_checkout(self, client, make_book):
        result = _place_order(client, make_book)

        assert result["total_amount"] == "25.00"
        assert result["order_number"].startswith("ORD-")
        assert client.get("/cart", headers=READER).json()["items"] == []

    def test_empty_cart(self, client):
        response = client.post("/checkout", json=CHECKOUT_FORM, headers=READER)
        assert response.status_code == 400
        assert response.json()["detail"] == "cart is empty"

    def test_out_of_stock_names_the_book(self, client, make_book, add_to_cart):
        add_to_cart("user-1", make_book(title="Sold Out", status="out_of_stock"))

        response = client.post("/checkout", json=CHECKOUT_FORM, headers=READER)
        assert response.status_code == 400
        assert "Sold Out" in response.json()["detail"]

    def test_missing_contact(self, client, make_book):
        _add(client, make_book().id)
        response = client.post("/checkout", json={"customer_name": "Ada"}, headers=READER)
        assert response.status_code == 400

    def test_concurrent_checkout(self, app, client, make_book, lock_service):
        app.dependency_overrides[get_lock_service] = lambda: lock_service
        lock_service.held.add("user-1")
        _add(client, make_book().id)

        response = client.post("/checkout", json=CHECKOUT_FORM, headers=READER)
        assert response.status_code == 400
        assert "in progress" in response.json()["detail"]


class TestOrderEndpoints:
    def test_owner_sees_orders_and_detail(self, client, make_book):
        placed = _place_order(client, make_book)

        orders = client.get("/orders", headers=READER).json()["orders"]
        assert [o["order_id"] for o in orders] == [placed["order_id"]]
        assert orders[0]["item_count"] == 2
        assert orders[0]["total_items"] == 3

        detail = client.get(f"/orders?order_id={placed['order_id']}", headers=READER).json()["order"]
        assert sorted(i["subtotal"] for i in detail["items"]) == ["20.00", "5.00"]

    def test_other_user_gets_404(self, client, make_book):
        placed = _place_order(client, make_book)

        response = client.get(f"/orders?order_id={placed['order_id']}", headers=OTHER)
        assert response.status_code == 404


class TestAdminOrderEndpoints:
    def test_complete_order(self, client, make_book, db):
        placed = _place_order(client, make_book)

        response = client.put(
            "/admin/orders",
            json={"order_id": placed["order_id"], "status": "completed", "admin_notes": "thanks!"},
            headers=OPERATOR,
        )

        assert response.status_code == 200, response.text
        order = response.json()["order"]
        assert order["status"] == "completed"
        assert order["completed_at"] is not None
        templates = [m.payload["template"] for m in OutboxRepo(db).list_by_kind(ORDER_MESSAGE)]
        assert templates == ["order_placed", "order_completed"]

    def test_filter_and_detail(self, client, make_book):
        placed = _place_order(client, make_book)

        assert client.get("/admin/orders?status=completed", headers=OPERATOR).json()["orders"] == []
        pending = client.get("/admin/orders?status=pending", headers=OPERATOR).json()["orders"]
        assert [o["order_id"] for o in pending] == [placed["order_id"]]
        detail = client.get(f"/admin/orders?order_id={placed['order_id']}", headers=OPERATOR).json()
        assert detail["order"]["customer_name"] == "Ada Lovelace"

    def test_invalid_status(self, client, make_book):
        placed = _place_order(client, make_book)

        response = client.put("/admin/orders", json={"order_id": placed["order_id"], "status": "Done"}, headers=OPERATOR)
        assert response.status_code == 400
        assert client.get("/admin/orders?status=Done", headers=OPERATOR).status_code == 400

    def test_unknown_order(self, client):
        response = client.put("/admin/orders", json={"order_id": 404, "status": "completed"}, headers=OPERATOR)
        assert response.status_code == 404


class TestAdminBookEndpoint:
    def test_available_book_queues_subscriber_alert(self, client, db):
        response = client.post("/admin/books", json={"title": "Kindred", "price": "11.00"}, headers=OPERATOR)

        assert response.status_code == 201, response.text
        book = response.json()["book"]
        assert book["status"] == "available"
        assert [m.payload for m in OutboxRepo(db).list_by_kind(NEW_BOOK_ALERT)] == [{"book_id": book["book_id"]}]

    def test_draft_book_is_not_announced(self, client, db):
        client.post("/admin/books", json={"title": "WIP", "price": "1.00", "status": "draft"}, headers=OPERATOR)
        assert OutboxRepo(db).list_by_kind(NEW_BOOK_ALERT) == []

    def test_readers_cannot_create_books(self, client):
        response = client.post("/admin/books", json={"title": "X", "price": "1.00"}, headers=READER)
        assert response.status_code == 403


class TestNotificationEndpoints:
    def test_subscribe_and_unsubscribe(self, client, db):
        body = {"endpoint": "https://push.example/ep-1", "keys": {"p256dh": "k", "auth": "a"}}
        response = client.post("/notifications/subscribe", json=body,
                               headers={**READER, "User-Agent": "Mozilla/5.0 (Linux; Android 14) Mobile"})
        assert response.status_code == 200

        sub = PushSubscriptionRepo(db).get_by_endpoint("https://push.example/ep-1")
        assert sub.device_type == "mobile"
        assert sub.user_id == "user-1"

        other = client.post("/notifications/unsubscribe", json={"endpoint": "https://push.example/ep-1"}, headers=OTHER)
        assert other.json()["detail"] == "not subscribed"

        response = client.post("/notifications/unsubscribe", json={"endpoint": "https://push.example/ep-1"}, headers=READER)
        assert response.json() == {"ok": True, "detail": None}
        assert PushSubscriptionRepo(db).get_by_endpoint("https://push.example/ep-1") is None

    def test_subscribe_requires_user(self, client):
        body = {"endpoint": "https://push.example/ep-1", "keys": {"p256dh": "k", "auth": "a"}}
        assert client.post("/notifications/subscribe", json=body).status_code == 401

    def test_vapid_key(self, client):
        assert client.get("/notifications/vapid").json() == {"public_key": ""}

    def test_new_books_since(self, client, make_book):
        old = datetime.now(timezone.utc) - timedelta(days=3)
        make_book(title="Old", created_at=old)
        make_book(title="Fresh")
        make_book(title="Hidden", status="draft")

        since = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
        data = client.get("/notifications/new-books", params={"since": since}).json()

        assert data["count"] == 1
        assert data["new_books"][0]["title"] == "Fresh"
        assert data["last_check"]

    def test_new_books_default_window(self, client, make_book):
        make_book(title="Old", created_at=datetime.now(timezone.utc) - timedelta(days=3))
        make_book(title="Fresh")

        data = client.get("/notifications/new-books").json()
        assert [b["title"] for b in data["new_books"]] == ["Fresh"]

    def test_new_books_bad_since(self, client):
        assert client.get("/notifications/new-books?since=yesterday").status_code == 400

    def test_send_push_fans_out_and_prunes(self, client, push, make_book, make_subscription, db):
        book = make_book(title="Kindred")
        make_subscription("https://push.example/alive")
        make_subscription("https://push.example/gone")
        push.outcomes["https://push.example/gone"] = GONE

        response = client.post("/notifications/send-push", json={"book_id": book.id})

        assert response.json() == {"sent": 1, "failed": 1, "total": 2}
        assert [s.endpoint for s in PushSubscriptionRepo(db).list_by_priority()] == ["https://push.example/alive"]

    def test_send_push_errors(self, client, make_book):
        assert client.post("/notifications/send-push", json={}).status_code == 400
        assert client.post("/notifications/send-push", json={"book_id": 404}).status_code == 404

    def test_send_push_without_vapid_keys(self, app, client, make_book):
        app.dependency_overrides[get_push_sender_factory] = lambda: WebPushSender
        book = make_book()

        response = client.post("/notifications/send-push", json={"book_id": book.id})

        assert response.status_code == 500
        assert "VAPID" in response.json()["detail"]

    def test_new_user_alerts_operator(self, client, db):
        response = client.post(
            "/notifications/new-user",
            json={"email": "grace@example.com", "first_name": "Grace", "last_name": "Hopper"},
        )

        assert response.status_code == 200
        alert = OutboxRepo(db).list_by_kind(OPERATOR_ALERT)[0]
        assert alert.payload["body"] == "Grace Hopper (grace@example.com) signed up"

    def test_new_user_requires_email(self, client):
        assert client.post("/notifications/new-user", json={"first_name": "Nobody"}).status_code == 400

    def test_send_test_push(self, client, push):
        body = {
            "subscription": {"endpoint": "https://push.example/mine", "keys": {"p256dh": "k", "auth": "a"}},
            "payload": {"title": "Hello", "body": "Just checking", "data": {"url": "/"}},
        }

        response = client.post("/notifications/send-test", json=body, headers=OPERATOR)

        assert response.status_code == 200, response.text
        assert response.json() == {"ok": True, "status": "sent", "status_code": 201}
        assert push.endpoints == ["https://push.example/mine"]
        sent = json.loads(push.sent[0]["data"])
        assert sent["title"] == "Hello"
        assert sent["tag"].startswith("notification-")

    def test_send_test_default_payload_and_gone_endpoint(self, client, push):
        push.outcomes["https://push.example/gone"] = GONE
        body = {"subscription": {"endpoint": "https://push.example/gone", "keys": {"p256dh": "k", "auth": "a"}}}

        response = client.post("/notifications/send-test", json=body, headers=OPERATOR)

        assert response.status_code == 500
        assert "gone" in response.json()["detail"]
        assert json.loads(push.sent[0]["data"])["title"] == "Test notification"

    def test_send_test_is_operator_only(self, client, push):
        body = {"subscription": {"endpoint": "https://push.example/mine", "keys": {"p256dh": "k", "auth": "a"}}}

        assert client.post("/notifications/send-test", json=body, headers=READER).status_code == 403
        assert push.sent == []


class TestMalformedRequests:
    def test_zero_quantity(self, client, make_book):
        response = client.post("/cart", json={"book_id": make_book().id, "quantity": 0}, headers=READER)
        assert response.status_code == 400
        assert "quantity" in response.json()["detail"]

    def test_status_update_without_order_id(self, client):
        response = client.put("/admin/orders", json={"status": "completed"}, headers=OPERATOR)
        assert response.status_code == 400
        assert "order_id" in response.json()["detail"]

    def test_null_customer_name(self, client, make_book):
        _add(client, make_book().id)
        response = client.post("/checkout", json={**CHECKOUT_FORM, "customer_name": None}, headers=READER)
        assert response.status_code == 400

    def test_subscription_without_keys(self, client):
        response = client.post("/notifications/subscribe", json={"endpoint": "https://push.example/x"}, headers=READER)
        assert response.status_code == 400
        assert "keys" in response.json()["detail"]
