from __future__ import annotations

from finplan.services.category_service import DEFAULT_CATEGORIES


def _names(client):
    return [c["name"] for c in client.get("/api/categories").json()]


def test_defaults_and_custom_categories(client):
    assert _names(client) == list(DEFAULT_CATEGORIES)

    res = client.post("/api/categories", json={"name": "Pets", "max_value": 150})
    assert res.status_code == 201
    assert res.json()["is_default"] is False
    assert _names(client)[-1] == "Pets"

    assert client.post("/api/categories", json={"name": "Pets"}).status_code == 409
    assert client.post("/api/categories", json={"name": "Food"}).status_code == 409
    assert client.post("/api/categories", json={"name": "Cap", "max_percentage": 120}).status_code == 422

    res = client.patch("/api/categories/Pets", json={"name": "Pet care", "max_percentage": 10})
    assert res.status_code == 200
    assert res.json()["name"] == "Pet care"
    assert res.json()["max_percentage"] == 10
    assert client.patch("/api/categories/Food", json={"max_value": 10}).status_code == 409

    assert client.delete("/api/categories/Pet care").status_code == 204
    assert "Pet care" not in _names(client)
    assert client.delete("/api/categories/Nope").status_code == 404


def test_hiding_and_showing_default_categories(client):
    assert client.delete("/api/categories/Food").status_code == 204
    assert client.delete("/api/categories/Food").status_code == 204
    assert client.get("/api/categories/hidden").json() == ["Food"]
    assert "Food" not in _names(client)

    assert client.post("/api/categories/Food/show").status_code == 204
    assert client.get("/api/categories/hidden").json() == []
    assert "Food" in _names(client)
    assert client.post("/api/categories/Food/show").status_code == 404
