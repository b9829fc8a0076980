import json

import pytest

pytestmark = pytest.mark.anyio


async def test_create_task_defaults(client):
    response = await client.post("/tasks", json={"name": "Feed", "deadline": "2030-01-01T00:00:00Z"})
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Task created"
    task = body["data"]
    assert task["description"] == ""
    assert task["completed"] is False
    assert task["assignedUser"] == ""
    assert task["assignedUserName"] == "unassigned"
    assert task["deadline"].startswith("2030-01-01T00:00:00")


async def test_deadline_accepts_epoch_milliseconds(make_task):
    task = await make_task(deadline="1700000000000")
    assert task["deadline"].startswith("2023-11-14T22:13:20")

    task = await make_task(deadline=1700000000000)
    assert task["deadline"].startswith("2023-11-14T22:13:20")


@pytest.mark.parametrize("deadline", ["November 14, 2023", "11/14/2023", "Tue Nov 14 2023"])
async def test_deadline_accepts_calendar_date_strings(make_task, deadline):
    task = await make_task(deadline=deadline)
    assert task["deadline"].startswith("2023-11-14T00:00:00")


async def test_invalid_deadline_is_bad_request(client):
    response = await client.post("/tasks", json={"name": "Feed", "deadline": "not-a-date"})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid deadline date"


async def test_create_task_requires_name_and_deadline(client):
    for payload in ({"name": "Feed"}, {"deadline": "2030-01-01"}, {"name": "", "deadline": "2030-01-01"}):
        response = await client.post("/tasks", json=payload)
        assert response.status_code == 400
        assert response.json() == {"message": "Task name and deadline are required", "data": {}}


async def test_completed_is_coerced_from_strings(make_task):
    assert (await make_task(completed="TRUE"))["completed"] is True
    assert (await make_task(completed="yes"))["completed"] is False
    assert (await make_task(completed=True))["completed"] is True


async def test_unknown_assignee_is_rejected(client):
    response = await client.post(
        "/tasks",
        json={"name": "Feed", "deadline": "2030-01-01", "assignedUser": "000000000000000000000000"},
    )
    assert response.status_code == 400
    assert response.json() == {"message": "Assigned user not found", "data": {}}


async def test_client_assigned_user_name_is_ignored(make_user, make_task):
    task = await make_task(assignedUserName="Somebody")
    assert task["assignedUserName"] == "unassigned"

    user = await make_user(name="Alice")
    task = await make_task(assignedUser=user["_id"], assignedUserName="Somebody")
    assert task["assignedUserName"] == "Alice"


async def test_get_task_and_not_found(client, make_task):
    task = await make_task()
    response = await client.get(f"/tasks/{task['_id']}", params={"select": json.dumps({"name": 1, "_id": 0})})
    assert response.status_code == 200
    assert response.json()["data"] == {"name": task["name"]}

    response = await client.get("/tasks/000000000000000000000000")
    assert response.status_code == 404
    assert response.json() == {"message": "Task not found", "data": {}}


async def test_list_tasks_defaults_to_one_hundred(client, make_task):
    for i in range(105):
        await make_task(name=f"Task {i}")

    response = await client.get("/tasks")
    assert len(response.json()["data"]) == 100

    response = await client.get("/tasks", params={"limit": "105"})
    assert len(response.json()["data"]) == 105

    response = await client.get("/tasks", params={"count": "true"})
    assert response.json()["data"] == 105


async def test_list_tasks_filters(client, make_task):
    await make_task(name="Early", deadline="2024-01-01T00:00:00Z", completed=True)
    await make_task(name="Late", deadline="2031-01-01T00:00:00Z")

    response = await client.get("/tasks", params={"where": json.dumps({"completed": False})})
    assert [t["name"] for t in response.json()["data"]] == ["Late"]

    response = await client.get(
        "/tasks", params={"where": json.dumps({"deadline": {"$lt": "2025-01-01T00:00:00Z"}})}
    )
    assert [t["name"] for t in response.json()["data"]] == ["Early"]

    response = await client.get("/tasks", params={"where": "notjson"})
    assert response.status_code == 400
    assert response.json()["data"] == []


async def test_update_task_keeps_omitted_fields(client, make_user, make_task):
    user = await make_user()
    task = await make_task(description="shear carefully", completed=True, assignedUser=user["_id"])

    response = await client.put(f"/tasks/{task['_id']}", json={"name": "Renamed", "deadline": "2031-01-01"})
    assert response.status_code == 200
    updated = response.json()["data"]
    assert response.json()["message"] == "Task updated"
    assert updated["name"] == "Renamed"
    assert updated["description"] == "shear carefully"
    assert updated["completed"] is True
    assert updated["assignedUser"] == user["_id"]


async def test_update_task_errors(client, make_task):
    task = await make_task()

    response = await client.put("/tasks/000000000000000000000000", json={"name": "X", "deadline": "2030-01-01"})
    assert response.status_code == 404

    response = await client.put(f"/tasks/{task['_id']}", json={"name": "X"})
    assert response.status_code == 400

    response = await client.put(
        f"/tasks/{task['_id']}",
        json={"name": "X", "deadline": "2030-01-01", "assignedUser": "000000000000000000000000"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Assigned user not found"


async def test_delete_task(client, make_task):
    task = await make_task()

    response = await client.delete(f"/tasks/{task['_id']}")
    assert response.status_code == 200
    assert response.json() == {"message": "Task deleted", "data": {}}

    response = await client.delete(f"/tasks/{task['_id']}")
    assert response.status_code == 404
