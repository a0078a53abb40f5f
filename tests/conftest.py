"""
Pytest fixtures for the Emporium API.

Every test gets its own app over a SQLite file in ``tmp_path``, a fake payment
gateway, and seed helpers for catalog rows and signed-in clients.
"""

import json
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from emporium.config import Settings
from emporium.db import create_schema
from emporium.errors import PaymentGatewayError, ValidationError
from emporium.main import create_app
from emporium.models import Category, Product, ProductSize
from emporium.services import auth_service
from emporium.services.payments import PaymentGateway, PaymentIntent

SHOPPER_PASSWORD = "secret123"
ADMIN_PASSWORD = "admin-pass-1"


class FakeGateway(PaymentGateway):
    """Records intent requests; signatures are valid only when equal to ``"valid"``.

    Idempotency keys behave like Stripe's: a repeated key returns the intent it
    first created, and reusing a key with a different amount is an error.
    """

    def __init__(self):
        self.calls = []
        self.intents = {}
        self.by_key = {}
        self.fail = False
        self.on_create = None

    def create_payment_intent(self, amount, currency, metadata=None, idempotency_key=None):
        if self.fail:
            raise PaymentGatewayError("Failed to create payment intent")
        if idempotency_key in self.by_key:
            intent, first_amount = self.by_key[idempotency_key]
            if first_amount != amount:
                raise PaymentGatewayError("Failed to create payment intent")
        else:
            n = len(self.intents) + 1
            intent = PaymentIntent(intent_id=f"pi_test_{n}", client_secret=f"pi_test_{n}_secret_abc")
            self.intents[intent.intent_id] = intent
            if idempotency_key:
                self.by_key[idempotency_key] = (intent, amount)
        self.calls.append(
            {
                "amount": amount,
                "currency": currency,
                "metadata": metadata,
                "idempotency_key": idempotency_key,
                "intent": intent,
            }
        )
        if self.on_create:
            self.on_create()
        return intent

    def construct_event(self, payload, signature):
        if signature != "valid":
            raise ValidationError("Webhook error")
        return json.loads(payload)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}",
        JWT_SECRET="test-access-secret",
        REFRESH_TOKEN_SECRET="test-refresh-secret",
        APP_ENV="test",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        PUBLIC_BASE_URL="http://testserver",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(settings, gateway):
    app = create_app(settings=settings, payment_gateway=gateway)
    create_schema(app.state.engine)
    yield app
    app.state.engine.dispose()


@pytest.fixture
def db(app):
    """Session for seeding and asserting; call ``expire_all()`` after API calls."""
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def anon_client(app):
    return TestClient(app)


@pytest.fixture
def category(db):
    category = Category(name="T-Shirts", description="Cotton tees")
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def make_product(db, category):
    def _make(name="Logo Tee", price="20.00", sizes=None, is_archived=False, category_id=None):
        product = Product(
            name=name,
            description=f"{name} description",
            price=Decimal(price),
            category_id=category_id or category.id,
            is_archived=is_archived,
        )
        product.sizes = [ProductSize(size=s, quantity=q) for s, q in (sizes or {}).items()]
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def product(make_product):
    """Price 20.00; 10 units of M, 2 of L, no S/XL/XXL rows."""
    return make_product(sizes={"M": 10, "L": 2})


@pytest.fixture
def stock_of(db):
    def _stock_of(product_id, size):
        db.expire_all()
        return db.query(ProductSize).filter_by(product_id=product_id, size=size).one().quantity

    return _stock_of


@pytest.fixture
def shopper(client):
    """Sign up through the API; ``client`` now carries the session cookies."""
    resp = client.post(
        "/api/auth/signup",
        json={"email": "shopper@emporium.io", "password": SHOPPER_PASSWORD, "name": "Shopper"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["user"]


@pytest.fixture
def signup_client(app):
    def _signup(email, name="Other Shopper"):
        other = TestClient(app)
        resp = other.post("/api/auth/signup", json={"email": email, "password": SHOPPER_PASSWORD, "name": name})
        assert resp.status_code == 201, resp.text
        return other, resp.json()["user"]

    return _signup


def admin_client_for(app, db, email, role):
    auth_service.create_admin(db, email, ADMIN_PASSWORD, role)
    admin = TestClient(app)
    resp = admin.post("/api/admin/auth/login", json={"email": email, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.text
    return admin


@pytest.fixture
def admin_client(app, db):
    return admin_client_for(app, db, "god@emporium.io", "GOD")


@pytest.fixture
def helper_client(app, db):
    return admin_client_for(app, db, "helper@emporium.io", "HELPER")


@pytest.fixture
def placed_order(client, shopper, product, gateway):
    """Three M tees at 20.00 ordered by ``shopper``."""
    resp = client.post("/api/cart/add", json={"productId": product.id, "size": "M", "quantity": 3})
    assert resp.status_code == 200, resp.text
    resp = client.post("/api/order/place-order", json={"userId": shopper["id"]})
    assert resp.status_code == 201, resp.text
    return resp.json()
