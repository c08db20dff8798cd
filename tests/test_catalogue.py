import pytest


def test_ping(client):
    assert client.get("/api/ping").json() == {"message": "ping"}


def test_unknown_snippet_uses_error_body(client):
    response = client.get("/api/snippets/snippet-missing")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found", "message": "Snippet not found", "statusCode": 404}


def test_list_snippets_paginates(client):
    body = client.get("/api/snippets", params={"limit": 2}).json()
    assert len(body["snippets"]) == 2
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 6, "totalPages": 3}
    assert all("code" not in s for s in body["snippets"])


@pytest.mark.parametrize("params, expected", [
    ({"language": "css"}, {"snippet-4"}),
    ({"framework": "React"}, {"snippet-1", "snippet-5"}),
    ({"minPrice": 10}, {"snippet-2", "snippet-5"}),
    ({"maxPrice": 5}, {"snippet-1", "snippet-4"}),
    ({"search": "cart"}, {"snippet-5"}),
    ({"author": "sarah"}, {"snippet-2"}),
])
def test_list_snippets_filters(client, params, expected):
    body = client.get("/api/snippets", params=params).json()
    assert {s["id"] for s in body["snippets"]} == expected


def test_list_snippets_sorting(client):
    body = client.get("/api/snippets", params={"sortBy": "price", "sortOrder": "asc"}).json()
    assert [s["price"] for s in body["snippets"]] == [3, 5, 6, 8, 12, 15]


def test_popular_and_author_snippets(client):
    popular = client.get("/api/snippets/popular", params={"limit": 1}).json()["snippets"]
    assert popular[0]["id"] == "snippet-4"

    mine = client.get("/api/snippets/author/user-3").json()
    assert [s["id"] for s in mine["snippets"]] == ["snippet-3"]


def test_create_snippet_requires_auth_and_valid_body(client, auth):
    payload = {"title": "T", "description": "D", "code": "x = 1", "price": 2, "language": "Python"}
    assert client.post("/api/snippets", json=payload).status_code == 401
    assert client.post("/api/snippets", headers=auth("user-6"), json={**payload, "price": -1}).status_code == 400

    response = client.post("/api/snippets", headers=auth("user-6"), json=payload)
    assert response.status_code == 201
    assert response.json()["snippet"]["author"] == "JSValidator"


@pytest.mark.parametrize("price", ["Infinity", "NaN", "1e12"])
def test_create_snippet_rejects_unstorable_prices(client, auth, price):
    body = '{"title": "T", "description": "D", "code": "x = 1", "language": "Python", "price": ' + price + "}"
    response = client.post("/api/snippets", headers={**auth("user-6"), "Content-Type": "application/json"}, content=body)
    assert response.status_code == 400
    assert response.json()["statusCode"] == 400


def test_users_listing_and_profiles(client):
    body = client.get("/api/users", params={"sortBy": "username", "sortOrder": "asc", "limit": 3}).json()
    assert body["total"] == 7
    assert [u["username"] for u in body["users"]] == ["AdminUser", "CSSGuru", "DevMaster"]

    profile = client.get("/api/users/username/CSSGuru").json()
    assert profile["user"]["id"] == "user-4"
    assert [s["id"] for s in profile["snippets"]] == ["snippet-4"]

    assert client.get("/api/users/user-2").json()["user"]["username"] == "SarahK"
    assert client.get("/api/users/user-missing").status_code == 404


def test_top_authors(client):
    body = client.get("/api/users/top-authors", params={"limit": 3}).json()
    authors = body["authors"]
    assert authors[0]["id"] == "user-4"
    assert authors[0]["snippetCount"] == 1
    assert authors[0]["totalDownloads"] == 123
    scores = [a["authorScore"] for a in authors]
    assert scores == sorted(scores, reverse=True)


def test_legacy_purchase_flow(client, store, auth):
    response = client.post("/api/purchases", headers=auth("user-3"), json={"snippetId": "snippet-4"})
    assert response.status_code == 201
    assert response.json()["snippet"]["downloads"] == 124

    again = client.post("/api/purchases", headers=auth("user-3"), json={"snippetId": "snippet-4"})
    assert again.status_code == 409

    check = client.get("/api/purchases/check/user-3/snippet-4").json()
    assert check["hasPurchased"] is True

    mine = client.get("/api/purchases/user/user-3", headers=auth("user-3")).json()
    assert mine["total"] == 1
    assert mine["purchases"][0]["snippet"]["code"].startswith(".grid-container")


def test_legacy_purchase_rejections(client, auth):
    assert client.post("/api/purchases", headers=auth("user-1"), json={"snippetId": "snippet-1"}).status_code == 400
    assert client.post("/api/purchases", headers=auth("user-3"), json={}).status_code == 400
    assert client.post("/api/purchases", headers=auth("user-3"),
                       json={"userId": "user-5", "snippetId": "snippet-4"}).status_code == 403
    assert client.post("/api/purchases", json={"snippetId": "snippet-4"}).status_code == 401


def test_admin_may_purchase_for_others(client, auth):
    response = client.post("/api/purchases", headers=auth("user-admin"),
                           json={"userId": "user-5", "snippetId": "snippet-4"})
    assert response.status_code == 201
    assert response.json()["purchase"]["userId"] == "user-5"


def test_purchase_history_is_private(client, auth):
    assert client.get("/api/purchases/user/user-1", headers=auth("user-3")).status_code == 403
    assert client.get("/api/purchases/user/user-1", headers=auth("user-admin")).status_code == 200


def test_snippet_sales(client):
    body = client.get("/api/purchases/snippet/snippet-2").json()
    assert body["stats"]["totalSales"] == 1
    assert body["stats"]["totalRevenue"] == 15
    assert body["stats"]["salesByDate"] == {"2024-03-01": 1}


def test_search(client):
    assert client.get("/api/search").status_code == 400
    assert client.get("/api/search", params={"q": "x", "type": "bogus"}).status_code == 400

    body = client.get("/api/search", params={"q": "react", "type": "snippets"}).json()
    assert [s["id"] for s in body["results"]["snippets"]][:2] == ["snippet-1", "snippet-5"]
    assert body["results"]["users"] == []

    users = client.get("/api/search", params={"q": "css", "type": "users"}).json()
    assert [u["username"] for u in users["results"]["users"]] == ["CSSGuru"]


def test_search_suggestions_and_filters(client):
    suggestions = client.get("/api/search/suggestions", params={"q": "rea"}).json()["suggestions"]
    assert {"text": "React", "type": "tag", "category": "Tags"} in suggestions

    filters = client.get("/api/search/filters").json()
    assert filters["languages"] == ["CSS", "JavaScript"]
    assert filters["priceRange"] == {"min": 3, "max": 15}


def test_stats_overview(client):
    body = client.get("/api/stats").json()
    assert body["overview"]["totalSnippets"] == 6
    assert body["overview"]["totalUsers"] == 7
    assert body["overview"]["totalPurchases"] == 2
    assert body["overview"]["totalRevenue"] == 20
    assert body["distributions"]["priceRanges"] == {"free": 0, "budget": 2, "standard": 4, "premium": 0}
    assert body["distributions"]["languages"] == {"JavaScript": 5, "CSS": 1}
    assert len(body["popularSnippets"]) == 5


def test_trending_counts_recent_purchases(client, auth):
    assert client.get("/api/stats/trending").json()["totalTrendingPurchases"] == 0

    client.post("/api/purchases", headers=auth("user-3"), json={"snippetId": "snippet-4"})
    body = client.get("/api/stats/trending", params={"days": 7}).json()
    assert body["period"] == "7 days"
    assert body["totalTrendingPurchases"] == 1
    assert body["trendingSnippets"][0]["id"] == "snippet-4"
    assert body["trendingSnippets"][0]["recentPurchases"] == 1
