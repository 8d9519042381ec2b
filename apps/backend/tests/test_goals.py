from __future__ import annotations


def _goal(client, **overrides):
    payload = {"name": "Emergency fund", "target_value": 1000}
    payload.update(overrides)
    res = client.post("/api/goals", json=payload)
    assert res.status_code == 201, res.text
    return res.json()


def test_contributions_drive_completion(client):
    goal = _goal(client)
    assert goal["current_value"] == 0
    assert goal["is_completed"] is False
    assert goal["color"] == "#667eea"

    res = client.post(f"/api/goals/{goal['id']}/contribute", json={"amount": 400})
    assert res.json()["current_value"] == 400
    assert res.json()["progress_percentage"] == 40
    assert res.json()["is_completed"] is False

    res = client.post(f"/api/goals/{goal['id']}/contribute", json={"amount": 600})
    assert res.json()["is_completed"] is True
    assert res.json()["progress_percentage"] == 100

    # withdrawals are allowed down to zero and reopen the goal
    res = client.post(f"/api/goals/{goal['id']}/contribute", json={"amount": -250})
    assert res.status_code == 200
    assert res.json()["current_value"] == 750
    assert res.json()["is_completed"] is False

    res = client.post(f"/api/goals/{goal['id']}/contribute", json={"amount": -1000})
    assert res.status_code == 400
    assert client.post(f"/api/goals/{goal['id']}/contribute", json={"amount": 0}).status_code == 422


def test_goal_update_recomputes_completion(client):
    goal = _goal(client, current_value=500, target_value=500)
    assert goal["is_completed"] is True

    res = client.patch(f"/api/goals/{goal['id']}", json={"target_value": 800, "icon": "plane"})
    assert res.status_code == 200
    assert res.json()["is_completed"] is False
    assert res.json()["icon"] == "plane"

    assert client.patch(f"/api/goals/{goal['id']}", json={"target_value": -1}).status_code == 422
    assert client.patch(f"/api/goals/{goal['id']}", json={"name": None}).status_code == 400


def test_goal_list_and_delete(client):
    first = _goal(client)
    _goal(client, name="Car", deadline="2026-12-31", category="Transport")

    listed = client.get("/api/goals").json()
    assert [g["name"] for g in listed] == ["Emergency fund", "Car"]

    assert client.delete(f"/api/goals/{first['id']}").status_code == 204
    assert [g["name"] for g in client.get("/api/goals").json()] == ["Car"]
    assert client.post(f"/api/goals/{first['id']}/contribute", json={"amount": 5}).status_code == 404
