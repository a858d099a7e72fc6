"""Tests for checkout and admin status progression."""

from storefront.constants.order_status import OrderStatus
from storefront.services.inventory_service import available_stock

PENDING = OrderStatus.PENDING.value
PREPARING = OrderStatus.PREPARING.value
SHIPPING = OrderStatus.SHIPPING.value
DELIVERED = OrderStatus.DELIVERED.value


class TestCreateOrder:
    def test_total_and_stock(self, session, product, place_order):
        order = place_order(size="M", quantity=2)

        assert order["total_amount"] == 1000
        assert order["status"] == OrderStatus.NEW.value
        assert order["is_paid"] is False
        assert order["tracking_id"].startswith("TD")
        assert order["items"][0]["unit_price"] == 500
        assert order["items"][0]["total_price"] == 1000
        assert available_stock(session, product.id, "M") == 8

    def test_contact_snapshot_from_profile(self, place_order, customer):
        order = place_order()
        assert order["name"] == customer.name
        assert order["phone"] == customer.phone
        assert order["address"] == customer.address
        assert order["email"] == customer.email

    def test_incomplete_profile_is_rejected(self, client, admin_headers, product):
        response = client.post(
            "/orders",
            json={"items": [{"product_id": product.id, "size": "M", "quantity": 1}]},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert "phone" in response.json()["detail"]

    def test_insufficient_stock_creates_nothing(self, client, session, customer_headers, product):
        response = client.post(
            "/orders",
            json={"items": [{"product_id": product.id, "size": "XL", "quantity": 3}]},
            headers=customer_headers,
        )
        assert response.status_code == 400
        assert "Insufficient stock" in response.json()["detail"]
        assert available_stock(session, product.id, "XL") == 2

        history = client.get("/orders/history", headers=customer_headers).json()
        assert history["orders"] == []

    def test_unknown_size(self, client, customer_headers, product):
        response = client.post(
            "/orders",
            json={"items": [{"product_id": product.id, "size": "XXL", "quantity": 1}]},
            headers=customer_headers,
        )
        assert response.status_code == 400

    def test_unknown_product(self, client, customer_headers, product):
        response = client.post(
            "/orders",
            json={"items": [{"product_id": 999, "size": "M", "quantity": 1}]},
            headers=customer_headers,
        )
        assert response.status_code == 404

    def test_order_from_cart_clears_it(self, client, customer_headers, product):
        client.post(
            "/cart/add",
            json={"product_id": product.id, "size": "S", "quantity": 2},
            headers=customer_headers,
        )
        client.post(
            "/cart/add",
            json={"product_id": product.id, "size": "L", "quantity": 1},
            headers=customer_headers,
        )

        response = client.post("/orders", json={}, headers=customer_headers)
        assert response.status_code == 201
        assert response.json()["order"]["total_amount"] == 2 * 450 + 500

        cart = client.get("/cart", headers=customer_headers).json()
        assert cart["items"] == []

    def test_empty_cart(self, client, customer_headers, product):
        response = client.post("/orders", json={}, headers=customer_headers)
        assert response.status_code == 400

    def test_prices_are_snapshotted(self, client, admin_headers, customer_headers, product, place_order):
        order = place_order(size="M", quantity=1)

        client.patch(
            f"/products/{product.id}",
            json={"price": {"M": 999}},
            headers=admin_headers,
        )

        again = client.get(f"/orders/{order['id']}", headers=customer_headers).json()["order"]
        assert again["items"][0]["unit_price"] == 500
        assert again["total_amount"] == 500

    def test_requires_login(self, client, product):
        response = client.post(
            "/orders",
            json={"items": [{"product_id": product.id, "size": "M", "quantity": 1}]},
        )
        assert response.status_code == 401


class TestCheckoutLink:
    def test_link_for_new_order(self, client, gateway, customer_headers, place_order):
        order = place_order()

        response = client.post("/payment", json={"order_id": order["id"]}, headers=customer_headers)
        assert response.status_code == 200
        assert response.json()["payment_url"] == "https://rzp.io/i/plink_1"

        link = gateway.links[0]
        assert link["amount"] == 1000
        assert link["notes"] == {"order_kind": "order", "order_id": str(order["id"])}

    def test_link_is_reused(self, client, gateway, customer_headers, place_order):
        order = place_order()
        client.post("/payment", json={"order_id": order["id"]}, headers=customer_headers)
        client.post("/payment", json={"order_id": order["id"]}, headers=customer_headers)
        assert len(gateway.links) == 1

    def test_paid_order_cannot_pay_again(self, client, customer_headers, place_order, pay):
        order = place_order()
        pay(order["id"])

        response = client.post("/payment", json={"order_id": order["id"]}, headers=customer_headers)
        assert response.status_code == 400

    def test_gateway_down(self, client, gateway, customer_headers, place_order):
        gateway.fail_links = True
        order = place_order()

        response = client.post("/payment", json={"order_id": order["id"]}, headers=customer_headers)
        assert response.status_code == 502

    def test_only_owner(self, client, other_headers, place_order):
        order = place_order()
        response = client.post("/payment", json={"order_id": order["id"]}, headers=other_headers)
        assert response.status_code == 404


class TestStatusProgression:
    def test_end_to_end(self, client, session, product, customer_headers, place_order, pay, advance):
        order = place_order(size="M", quantity=2)
        assert order["total_amount"] == 1000

        pay(order["id"])
        assert available_stock(session, product.id, "M") == 8

        for status in (PREPARING, SHIPPING, DELIVERED):
            response = advance(order["id"], status)
            assert response.status_code == 200, response.text
            assert response.json()["order"]["status"] == status

        delivered = client.get(f"/orders/{order['id']}", headers=customer_headers).json()["order"]
        assert delivered["delivered_at"] is not None

        response = advance(order["id"], PREPARING)
        assert response.status_code == 400

    def test_unpaid_order_is_forbidden(self, place_order, advance):
        order = place_order()
        response = advance(order["id"], PREPARING)
        assert response.status_code == 403

    def test_skip_is_rejected(self, place_order, pay, advance):
        order = place_order()
        pay(order["id"])

        response = advance(order["id"], SHIPPING)
        assert response.status_code == 400
        assert PREPARING in response.json()["detail"]

    def test_repeat_is_rejected(self, place_order, pay, advance):
        order = place_order()
        pay(order["id"])

        assert advance(order["id"], PREPARING).status_code == 200
        response = advance(order["id"], PREPARING)
        assert response.status_code == 400

    def test_invalid_status(self, place_order, pay, advance):
        order = place_order()
        pay(order["id"])
        assert advance(order["id"], "shipped").status_code == 400

    def test_customer_cannot_advance(self, client, customer_headers, place_order, pay):
        order = place_order()
        pay(order["id"])

        response = client.patch(
            f"/orders/{order['id']}", json={"status": PREPARING}, headers=customer_headers
        )
        assert response.status_code == 403

    def test_missing_order(self, advance, admin):
        assert advance(999, PREPARING).status_code == 404

    def test_timeline_records_each_change(self, client, customer_headers, place_order, pay, advance):
        order = place_order()
        pay(order["id"])
        advance(order["id"], PREPARING)

        timeline = client.get(f"/orders/{order['id']}/timeline", headers=customer_headers).json()
        assert [e["type"] for e in timeline["events"]] == [
            "order_created",
            "payment_confirmed",
            "status_changed",
        ]

    def test_email_failure_keeps_status(self, monkeypatch, client, customer_headers, place_order, pay, advance):
        def broken_send(*args, **kwargs):
            raise RuntimeError("smtp down")

        monkeypatch.setattr("storefront.notifications.email_handlers.send_email", broken_send)

        order = place_order()
        pay(order["id"])

        response = advance(order["id"], PREPARING)
        assert response.status_code == 200

        stored = client.get(f"/orders/{order['id']}", headers=customer_headers).json()["order"]
        assert stored["status"] == PREPARING


class TestOrderQueries:
    def test_history_newest_first(self, client, customer_headers, place_order):
        first = place_order(quantity=1)
        second = place_order(quantity=1)

        history = client.get("/orders/history", headers=customer_headers).json()["orders"]
        assert [o["id"] for o in history] == [second["id"], first["id"]]

    def test_other_customer_cannot_see_order(self, client, other_headers, place_order):
        order = place_order()
        response = client.get(f"/orders/{order['id']}", headers=other_headers)
        assert response.status_code == 404

    def test_admin_list_filters_by_status(self, client, admin_headers, place_order, pay):
        paid = place_order(quantity=1)
        place_order(quantity=1)
        pay(paid["id"])

        response = client.get("/orders", params={"status": PENDING}, headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["total_items"] == 1
        assert body["results"][0]["id"] == paid["id"]

    def test_admin_list_requires_admin(self, client, customer_headers):
        assert client.get("/orders", headers=customer_headers).status_code == 403

    def test_slip_after_payment(self, client, customer_headers, place_order, pay):
        order = place_order()

        response = client.get(f"/orders/{order['id']}/slip", headers=customer_headers)
        assert response.status_code == 400

        pay(order["id"])
        response = client.get(f"/orders/{order['id']}/slip", headers=customer_headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")
