from decimal import Decimal

from codehut.modules.purchases.access import is_snippet_accessible
from codehut.modules.snippets.models import Snippet
from codehut.store.memory import MemoryStore


def test_free_snippet_is_open_to_anonymous_callers(client, publish):
    snippet_id = publish("user-2", 0)
    assert client.get(f"/api/snippets/{snippet_id}/access").json() == {"snippetId": snippet_id, "accessible": True}

    detail = client.get(f"/api/snippets/{snippet_id}").json()["snippet"]
    assert detail["locked"] is False
    assert detail["code"]


def test_paid_snippet_is_closed_to_anonymous_callers(client):
    assert client.get("/api/snippets/snippet-1/access").json()["accessible"] is False
    detail = client.get("/api/snippets/snippet-1").json()["snippet"]
    assert detail["code"] is None
    assert detail["locked"] is True


def test_paid_snippet_access_follows_purchases(client, auth):
    # user-2 bought snippet-1 in the sample data, user-1 wrote it
    assert client.get("/api/snippets/snippet-1/access", headers=auth("user-2")).json()["accessible"] is True
    assert client.get("/api/snippets/snippet-1/access", headers=auth("user-1")).json()["accessible"] is True
    assert client.get("/api/snippets/snippet-1/access", headers=auth("user-3")).json()["accessible"] is False


def test_bad_token_on_public_route_is_anonymous(client):
    headers = {"Authorization": "Bearer not-a-token"}
    response = client.get("/api/snippets/snippet-1/access", headers=headers)
    assert response.status_code == 200
    assert response.json()["accessible"] is False


def test_access_check_for_unknown_snippet(client):
    response = client.get("/api/snippets/snippet-missing/access")
    assert response.status_code == 404


class BrokenStore(MemoryStore):
    async def get_purchase(self, user_id, snippet_id):
        raise RuntimeError("database went away")


def _paid_snippet():
    return Snippet(id="snippet-x", title="X", description="x", code="x", price=Decimal("9.00"),
                   author_id="user-1", author_username="JohnDoe", language="Python", tags=[])


async def test_gate_fails_closed_when_lookup_errors():
    assert await is_snippet_accessible(BrokenStore(), _paid_snippet(), "user-2") is False


async def test_gate_does_not_consult_store_for_free_or_own_snippets():
    snippet = _paid_snippet()
    assert await is_snippet_accessible(BrokenStore(), snippet, "user-1") is True
    snippet.price = Decimal("0")
    assert await is_snippet_accessible(BrokenStore(), snippet, None) is True
