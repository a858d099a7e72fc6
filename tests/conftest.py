"""Pytest fixtures for storefront tests."""

import json
import os
import tempfile

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["BREVO_API_KEY"] = ""
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="storefront-uploads-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

import storefront.models  # noqa: E402,F401
from storefront.database import get_session  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.models.product import Product  # noqa: E402
from storefront.models.user import User  # noqa: E402
from storefront.services.inventory_service import set_stock  # noqa: E402
from storefront.services.payment_service import (  # noqa: E402
    PaymentGatewayError,
    get_payment_gateway,
)
from storefront.utils.hash import hash_password  # noqa: E402
from storefront.utils.token import create_access_token  # noqa: E402

GOOD_SIGNATURE = "good-signature"


class FakeGateway:
    """Records every call instead of talking to Razorpay."""

    def __init__(self):
        self.links = []
        self.refunds = []
        self.lookups = []
        self.captured = set()
        self.fail_refunds = False
        self.fail_links = False
        self.fail_lookups = False

    def create_payment_link(self, *, amount, reference, description, customer, notes):
        if self.fail_links:
            raise PaymentGatewayError("gateway down")
        link_id = f"plink_{len(self.links) + 1}"
        self.links.append(
            {"id": link_id, "amount": amount, "reference": reference, "notes": notes}
        )
        return {"id": link_id, "url": f"https://rzp.io/i/{link_id}"}

    def refund(self, payment_id, amount=None):
        if self.fail_refunds:
            raise PaymentGatewayError("refund rejected")
        self.refunds.append((payment_id, amount))
        return f"rfnd_{len(self.refunds)}"

    def is_payment_captured(self, payment_id):
        self.lookups.append(payment_id)
        if self.fail_lookups:
            raise PaymentGatewayError("lookup failed")
        return payment_id in self.captured

    def verify_webhook(self, body, signature):
        return signature == GOOD_SIGNATURE


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="gateway")
def gateway_fixture():
    return FakeGateway()


@pytest.fixture(name="client")
def client_fixture(session, gateway):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


def _make_user(session, email, role="user", **fields):
    user = User(
        email=email,
        password=hash_password("secret-pass"),
        role=role,
        **fields,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'user_id': user.id})}"}


@pytest.fixture
def customer(session):
    return _make_user(
        session,
        "somchai@example.com",
        name="Somchai Jaidee",
        phone="0812345678",
        address="99 Sukhumvit Rd, Bangkok",
    )


@pytest.fixture
def other_customer(session):
    return _make_user(
        session,
        "malee@example.com",
        name="Malee Srisuk",
        phone="0898765432",
        address="12 Nimman Rd, Chiang Mai",
    )


@pytest.fixture
def admin(session):
    return _make_user(session, "admin@tdouble.shop", role="admin", name="Admin")


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def other_headers(other_customer):
    return auth_headers(other_customer)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def product(session):
    product = Product(
        name="Oversize Tee",
        category="T-Shirt",
        price={"S": 450, "M": 500, "L": 500, "XL": 550},
    )
    session.add(product)
    session.flush()
    set_stock(session, product.id, {"S": 5, "M": 10, "L": 10, "XL": 2})
    session.commit()
    session.refresh(product)
    return product


def paid_event(order_id, payment_id, kind="order"):
    return {
        "event": "payment_link.paid",
        "payload": {
            "payment_link": {
                "entity": {
                    "id": "plink_test",
                    "notes": {"order_kind": kind, "order_id": str(order_id)},
                }
            },
            "payment": {"entity": {"id": payment_id, "status": "captured"}},
        },
    }


@pytest.fixture
def place_order(client, customer_headers, product):
    """POST /orders for one line of the test product."""

    def _place(size="M", quantity=2, headers=None):
        response = client.post(
            "/orders",
            json={"items": [{"product_id": product.id, "size": size, "quantity": quantity}]},
            headers=headers or customer_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()["order"]

    return _place


@pytest.fixture
def post_webhook(client):
    def _post(event, signature=GOOD_SIGNATURE, path="/webhook"):
        return client.post(
            path,
            content=json.dumps(event),
            headers={"X-Razorpay-Signature": signature, "Content-Type": "application/json"},
        )

    return _post


@pytest.fixture
def pay(post_webhook):
    """Deliver a signed payment_link.paid webhook."""

    def _pay(order_id, payment_id="pay_001", kind="order", path="/webhook"):
        response = post_webhook(paid_event(order_id, payment_id, kind), path=path)
        assert response.status_code == 200, response.text
        return response.json()

    return _pay


@pytest.fixture
def advance(client, admin_headers):
    def _advance(order_id, status):
        return client.patch(
            f"/orders/{order_id}", json={"status": status}, headers=admin_headers
        )

    return _advance
