"""Tests for the product catalogue and its admin endpoints."""

from sqlmodel import select

from storefront.models.cart import CartItem
from storefront.models.product import ProductStock

NEW_PRODUCT = {
    "name": "Boxy Hoodie",
    "category": "Hoodie",
    "price": {"S": 900, "M": 950, "L": 950, "XL": 990},
    "stock": {"M": 4, "L": 2},
}


def test_public_listing(client, product):
    body = client.get("/products").json()
    assert body["total_items"] == 1
    assert body["results"][0]["stock"]["M"] == 10


def test_create_fills_missing_sizes(client, admin_headers):
    response = client.post("/products", json=NEW_PRODUCT, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["stock"] == {"S": 0, "M": 4, "L": 2, "XL": 0}


def test_patch_changes_only_given_fields(client, admin_headers, product):
    response = client.patch(
        f"/products/{product.id}",
        json={"category": "Tee", "stock": {"XL": 7}},
        headers=admin_headers,
    )
    assert response.status_code == 200

    body = response.json()
    assert body["category"] == "Tee"
    assert body["name"] == "Oversize Tee"
    assert body["price"]["M"] == 500
    assert body["stock"]["XL"] == 7
    assert body["stock"]["M"] == 10


def test_patch_rejects_unknown_size(client, admin_headers, product):
    response = client.patch(
        f"/products/{product.id}", json={"price": {"XXL": 100}}, headers=admin_headers
    )
    assert response.status_code == 400


def test_put_replaces_the_product(client, admin_headers, product):
    response = client.put(f"/products/{product.id}", json=NEW_PRODUCT, headers=admin_headers)
    assert response.status_code == 200

    body = response.json()
    assert body["name"] == "Boxy Hoodie"
    assert body["stock"] == {"S": 0, "M": 4, "L": 2, "XL": 0}


def test_put_requires_full_body(client, admin_headers, product):
    response = client.put(f"/products/{product.id}", json={"name": "x"}, headers=admin_headers)
    assert response.status_code == 422


def test_edit_requires_admin(client, customer_headers, product):
    response = client.patch(
        f"/products/{product.id}", json={"name": "x"}, headers=customer_headers
    )
    assert response.status_code == 403


class TestDeleteProduct:
    def test_delete_clears_stock_and_carts(self, client, session, admin_headers, customer_headers, product):
        client.post(
            "/cart/add",
            json={"product_id": product.id, "size": "M", "quantity": 1},
            headers=customer_headers,
        )

        response = client.delete(f"/products/{product.id}", headers=admin_headers)
        assert response.status_code == 200

        assert client.get(f"/products/{product.id}").status_code == 404
        assert session.exec(select(ProductStock).where(ProductStock.product_id == product.id)).all() == []
        assert session.exec(select(CartItem).where(CartItem.product_id == product.id)).all() == []

    def test_missing_product(self, client, admin_headers):
        assert client.delete("/products/404", headers=admin_headers).status_code == 404

    def test_ordered_product_is_kept(self, client, admin_headers, product, place_order):
        place_order()

        response = client.delete(f"/products/{product.id}", headers=admin_headers)
        assert response.status_code == 409
        assert client.get(f"/products/{product.id}").status_code == 200

    def test_requires_admin(self, client, customer_headers, product):
        assert client.delete(f"/products/{product.id}", headers=customer_headers).status_code == 403
