import hashlib
import hmac
import json

import pytest
from fastapi.testclient import TestClient

from codehut.core.config import Settings
from codehut.main import create_app
from codehut.modules.payments.gateway import RazorpayGateway
from codehut.store.sample_data import ADMIN_PASSWORD, DEMO_PASSWORD

KEY_ID = "rzp_test_key"
KEY_SECRET = "test_key_secret"
WEBHOOK_SECRET = "test_webhook_secret"

EMAILS = {
    "user-1": "john@example.com",
    "user-2": "sarah@example.com",
    "user-3": "dev@example.com",
    "user-4": "css@example.com",
    "user-5": "react@example.com",
    "user-6": "js@example.com",
    "user-admin": "admin@codehut.com",
}


def make_settings(**overrides) -> Settings:
    values = dict(
        _env_file=None,
        DATABASE_URL=None,
        SEED_SAMPLE_DATA=True,
        BCRYPT_ROUNDS=4,
        JWT_SECRET="test-secret",
        LOG_LEVEL="WARNING",
        RAZORPAY_KEY_ID=KEY_ID,
        RAZORPAY_KEY_SECRET=KEY_SECRET,
        RAZORPAY_SECRET=None,
        RAZORPAY_WEBHOOK_SECRET=WEBHOOK_SECRET,
    )
    values.update(overrides)
    return Settings(**values)


class FakeGateway(RazorpayGateway):
    """Real signature checks, no network: remote orders are recorded instead."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    async def create_order(self, amount, currency, receipt, notes, transfers=None):
        self.calls.append({
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
            "transfers": transfers,
        })
        return {
            "id": f"order_test_{len(self.calls)}",
            "amount": amount,
            "currency": currency,
            "status": "created",
        }


def payment_signature(order_id: str, payment_id: str, secret: str = KEY_SECRET) -> str:
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def webhook_delivery(event: dict, secret: str = WEBHOOK_SECRET):
    body = json.dumps(event).encode()
    signature = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return body, signature


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def gateway():
    return FakeGateway(KEY_ID, KEY_SECRET, WEBHOOK_SECRET)


@pytest.fixture
def client(settings, gateway):
    """API with live payments against a fake gateway and a seeded memory store."""
    app = create_app(settings=settings, gateway=gateway)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def demo_client():
    """API with no Razorpay credentials."""
    settings = make_settings(RAZORPAY_KEY_ID=None, RAZORPAY_KEY_SECRET=None, RAZORPAY_WEBHOOK_SECRET=None)
    app = create_app(settings=settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def store(client):
    return client.app.state.store


def login(client, user_id: str) -> dict:
    password = ADMIN_PASSWORD if user_id == "user-admin" else DEMO_PASSWORD
    response = client.post("/api/auth/login", json={"email": EMAILS[user_id], "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}


@pytest.fixture
def auth(client):
    """Returns bearer headers for a sample user id."""
    cache = {}

    def headers(user_id: str) -> dict:
        if user_id not in cache:
            cache[user_id] = login(client, user_id)
        return cache[user_id]

    return headers


@pytest.fixture
def publish(client, auth):
    """Publishes a snippet as ``author_id`` and returns its id."""
    def _publish(author_id: str, price, title: str = "Rate Limiter") -> str:
        response = client.post("/api/snippets", headers=auth(author_id), json={
            "title": title,
            "description": "Token bucket rate limiter",
            "code": "def allow(bucket):\n    return bucket.take(1)\n",
            "price": price,
            "language": "Python",
            "framework": "FastAPI",
            "tags": ["Python", "RateLimit"],
        })
        assert response.status_code == 201, response.text
        return response.json()["snippet"]["id"]

    return _publish
