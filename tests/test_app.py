import pytest
from fastapi.testclient import TestClient

from conftest import make_settings
from codehut.core.config import Settings
from codehut.main import create_app
from codehut.store.memory import MemoryStore


def test_ping_message_is_configurable():
    app = create_app(settings=make_settings(PING_MESSAGE="pong"))
    with TestClient(app) as client:
        assert client.get("/api/ping").json() == {"message": "pong"}


def test_injected_store_is_used_as_is():
    store = MemoryStore()
    app = create_app(settings=make_settings(), store=store)
    with TestClient(app) as client:
        assert client.app.state.store is store
        assert client.get("/api/snippets").json()["pagination"]["total"] == 0


def test_memory_store_can_start_empty():
    app = create_app(settings=make_settings(SEED_SAMPLE_DATA=False))
    with TestClient(app) as client:
        assert client.get("/api/users").json()["total"] == 0


def test_unhandled_errors_render_as_500():
    class ExplodingStore(MemoryStore):
        async def all_snippets(self):
            raise RuntimeError("boom")

    app = create_app(settings=make_settings(), store=ExplodingStore())
    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/stats")
    assert response.status_code == 500
    assert response.json() == {
        "error": "Internal Server Error",
        "message": "Internal server error",
        "statusCode": 500,
    }


@pytest.mark.parametrize("url, expected", [
    ("postgres://u:p@db:5432/codehut", "postgresql+asyncpg://u:p@db:5432/codehut"),
    ("postgresql://u:p@db/codehut", "postgresql+asyncpg://u:p@db/codehut"),
    ("sqlite+aiosqlite:///./codehut.db", "sqlite+aiosqlite:///./codehut.db"),
])
def test_database_url_is_made_async(url, expected):
    settings = Settings(_env_file=None, DATABASE_URL=url)
    assert settings.database_enabled
    assert settings.async_database_url == expected


def test_payments_need_both_key_parts():
    assert not make_settings(RAZORPAY_KEY_SECRET=None).payments_enabled
    assert make_settings(RAZORPAY_KEY_SECRET=None, RAZORPAY_SECRET="legacy").payments_enabled
    assert make_settings(RAZORPAY_KEY_SECRET=None, RAZORPAY_SECRET="legacy").razorpay_secret == "legacy"
