import json
import os
import time

# konfiguracja musi byc ustawiona zanim zaimportuje sie storefront
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PAYMENT_GATEWAY"] = "fake"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"

import pytest
from fastapi.testclient import TestClient

from storefront.celery_worker import celery_app
from storefront.data.database import Base, SessionLocal, engine
from storefront.data.models import ProductModel, StockModel, UserModel
from storefront.main import create_app
from storefront.services.lock_service import LockService
from storefront.services.payment_gateway import FakeGateway
from storefront.services.webhook_verifier import sign
from tests.fakes import FakeRedis, RecordingNotifier

WEBHOOK_SECRET = "whsec_test"

celery_app.conf.task_always_eager = True


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db(_schema):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def catalog(db):
    gelcoat = ProductModel(id=7, name="Gelcoat", price=1200, stock_level=0)
    large = StockModel(size="Large", price=1400, stock_level=10)
    small = StockModel(size="Small", price=900, stock_level=3)
    gelcoat.stocks = [large, small]
    mat = ProductModel(id=1, name="Fibreglass Mat", price=1500, stock_level=5)
    cups = ProductModel(id=2, name="Mixing Cups", price=350, stock_level=100)
    db.add_all([gelcoat, mat, cups])
    db.commit()
    return {"gelcoat": gelcoat, "large": large, "small": small, "mat": mat, "cups": cups}


@pytest.fixture()
def customer(db):
    user = UserModel(email="customer@example.com", full_name="Jane Customer")
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def gateway():
    gw = FakeGateway()
    gw.add_shipping_rate("shr_overnight", "Overnight Shipping (Order Before 11:00am Mon-Thu)")
    return gw


@pytest.fixture()
def fake_redis():
    return FakeRedis()


@pytest.fixture()
def lock_service(fake_redis):
    return LockService(client=fake_redis)


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def client(gateway, lock_service, notifier):
    app = create_app(gateway=gateway, lock_service=lock_service, notifier=notifier)
    return TestClient(app)


def checkout_session_payload(
    session_id="cs_test_123",
    payment_intent="pi_123",
    email="customer@example.com",
    amount_total=2800,
    line_items=None,
    shipping_rate=None,
    shipping_amount=0,
):
    payload = {
        "id": session_id,
        "object": "checkout.session",
        "payment_intent": payment_intent,
        "payment_status": "paid",
        "amount_total": amount_total,
        "customer_details": {
            "email": email,
            "name": "Jane Customer",
            "phone": "+44 7700 900000",
            "address": {
                "line1": "1 Billing Road",
                "line2": "",
                "city": "Leeds",
                "state": None,
                "postal_code": "LS1 1AA",
                "country": "GB",
            },
        },
        "collected_information": {
            "shipping_details": {
                "name": "Jane Receiver",
                "address": {
                    "line1": "2 Shipping Lane",
                    "line2": "Unit 4",
                    "city": "York",
                    "state": "",
                    "postal_code": "YO1 7HH",
                    "country": "GB",
                },
            }
        },
        "shipping_cost": {"amount_total": shipping_amount, "shipping_rate": shipping_rate},
    }
    if line_items is not None:
        payload["line_items"] = {"object": "list", "data": line_items}
    return payload


def gateway_line_item(quantity, product_id, price, size="", stock_id=""):
    return {
        "quantity": quantity,
        "price": {
            "product": {
                "metadata": {
                    "product_id": str(product_id),
                    "size": size,
                    "product_stock_id": str(stock_id),
                    "product_price": str(price),
                }
            }
        },
    }


def post_webhook(client, event_type, data, secret=WEBHOOK_SECRET, timestamp=None):
    body = json.dumps({"id": "evt_test", "type": event_type, "data": {"object": data}})
    header = sign(body, secret, timestamp if timestamp is not None else int(time.time()))
    return client.post(
        "/webhooks",
        content=body,
        headers={"Content-Type": "application/json", "Stripe-Signature": header},
    )
