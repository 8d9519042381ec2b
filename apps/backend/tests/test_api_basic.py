from __future__ import annotations


PROJECTION = {"reference_date": "2024-01-15", "horizon": 2}


def _rule(client, **overrides):
    payload = {
        "description": "Salary",
        "type": "income",
        "category": "Salary",
        "value": 1500,
        "start_date": "2024-01-01",
        "day_of_month": 5,
    }
    payload.update(overrides)
    res = client.post("/api/recurring-rules", json=payload)
    assert res.status_code == 201, res.text
    return res.json()


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_transaction_crud_and_month_derivation(client):
    res = client.post(
        "/api/transactions",
        json={"description": "Groceries", "type": "expense", "category": "Food", "value": 87.3, "date": "2024-03-09"},
    )
    assert res.status_code == 201
    tx = res.json()
    assert tx["month"] == "2024-03"
    assert tx["is_paid"] is False
    assert tx["is_predicted"] is False

    res = client.patch(f"/api/transactions/{tx['id']}", json={"date": "2024-04-01", "value": 90})
    assert res.status_code == 200
    assert res.json()["month"] == "2024-04"

    assert client.get("/api/transactions", params={"month": "2024-03"}).json() == []
    assert len(client.get("/api/transactions", params={"month": "2024-04"}).json()) == 1

    res = client.delete(f"/api/transactions/{tx['id']}")
    assert res.status_code == 200
    assert res.json() == {"deleted": str(tx["id"]), "excluded": False}
    assert client.delete(f"/api/transactions/{tx['id']}").status_code == 404
    assert client.delete("/api/transactions/not-an-id").status_code == 404


def test_transaction_validation(client):
    base = {"description": "Coffee", "type": "expense", "category": "Food", "value": 5, "date": "2024-03-09"}
    assert client.post("/api/transactions", json={**base, "value": 0}).status_code == 422
    assert client.post("/api/transactions", json={**base, "value": -3}).status_code == 422
    assert client.post("/api/transactions", json={**base, "description": "  "}).status_code == 422
    assert client.post("/api/transactions", json={**base, "type": "transfer"}).status_code == 422
    assert client.post("/api/transactions", json={**base, "recurring_id": 999}).status_code == 404
    assert client.get("/api/transactions", params={"month": "2024-3"}).status_code == 422


def test_linked_transaction_is_unique_per_month(client):
    rule = _rule(client)
    body = {
        "description": "Salary",
        "type": "income",
        "category": "Salary",
        "value": 1500,
        "date": "2024-02-05",
        "recurring_id": rule["id"],
    }
    assert client.post("/api/transactions", json=body).status_code == 201
    res = client.post("/api/transactions", json={**body, "date": "2024-02-20"})
    assert res.status_code == 409


def test_delete_transaction_with_prediction_id_excludes_it(client):
    rule = _rule(client)
    pid = f"predicted-{rule['id']}-2024-02"

    res = client.delete(f"/api/transactions/{pid}", params={"reference_date": "2024-01-15"})
    assert res.status_code == 200
    assert res.json() == {"deleted": pid, "excluded": True}

    preds = client.get("/api/predictions", params=PROJECTION).json()
    assert [p["id"] for p in preds] == [f"predicted-{rule['id']}-2024-01", f"predicted-{rule['id']}-2024-03"]

    exclusions = client.get("/api/predictions/exclusions").json()
    assert [e["prediction_id"] for e in exclusions] == [pid]

    assert client.delete(f"/api/predictions/exclusions/{pid}").status_code == 204
    assert client.delete(f"/api/predictions/exclusions/{pid}").status_code == 404
    assert len(client.get("/api/predictions", params=PROJECTION).json()) == 3


def test_convert_prediction_endpoint(client):
    rule = _rule(client)
    pid = f"predicted-{rule['id']}-2024-02"

    res = client.post(f"/api/predictions/{pid}/convert", params=PROJECTION, json={"value": 1510.25})
    assert res.status_code == 201
    tx = res.json()
    assert tx["date"] == "2024-02-05"
    assert tx["recurring_id"] == rule["id"]
    assert tx["is_paid"] is True
    assert tx["value"] == 1510.25

    res = client.post(f"/api/predictions/{pid}/convert", params=PROJECTION)
    assert res.status_code == 404
    assert client.post("/api/predictions/garbage/convert", params=PROJECTION).status_code == 404


def test_toggle_paid_and_duplicate_endpoints(client):
    rule = _rule(client)
    tx = client.post(
        "/api/transactions",
        json={"description": "Rent", "type": "expense", "category": "Housing", "value": 900, "date": "2024-01-30"},
    ).json()

    res = client.post(f"/api/transactions/{tx['id']}/toggle-paid")
    assert res.status_code == 200
    assert res.json()["is_paid"] is True

    res = client.post(f"/api/transactions/predicted-{rule['id']}-2024-01/toggle-paid")
    assert res.status_code == 409

    res = client.post(f"/api/transactions/{tx['id']}/duplicate-next-month")
    assert res.status_code == 201
    copy = res.json()
    assert copy["date"] == "2024-02-28"
    assert copy["is_paid"] is False

    res = client.post(f"/api/transactions/predicted-{rule['id']}-2024-01/duplicate-next-month")
    assert res.status_code == 409


def test_horizon_is_bounded(client):
    _rule(client)
    assert client.get("/api/predictions", params={"horizon": 25}).status_code == 400
    res = client.get("/api/predictions", params={"reference_date": "2024-01-15", "horizon": 24})
    assert len(res.json()) == 25
    assert client.get("/api/predictions", params={"horizon": -1}).status_code == 422


def test_reset_removes_owner_data(client):
    rule = _rule(client)
    client.post(f"/api/predictions/predicted-{rule['id']}-2024-01/convert", params=PROJECTION)
    client.put("/api/budgets", json={"category": "Food", "month": "2024-01", "budget_value": 300})
    client.post("/api/goals", json={"name": "Trip", "target_value": 2000})
    client.put("/api/months/current", json={"month": "2024-01"})

    res = client.post("/api/maintenance/reset")
    assert res.status_code == 200
    body = res.json()
    assert body["details"] == {
        "transactions": 1,
        "prediction_exclusions": 1,
        "recurring_rules": 1,
        "budgets": 1,
        "goals": 1,
        "categories": 0,
        "hidden_categories": 0,
        "settings": 1,
    }
    assert body["removed"] == 6
    assert client.get("/api/recurring-rules").json() == []
