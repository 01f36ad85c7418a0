import pytest
from httpx import AsyncClient

from conftest import create_project, invite_and_accept, register_and_login


async def _create_todo(client: AsyncClient, headers, project_id: int, **extra) -> dict:
    response = await client.post(
        "/api/todos",
        json={"title": "Revisar login", "project_id": project_id, **extra},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.anyio
async def test_todo_crud(client: AsyncClient):
    headers = await register_and_login(client, "owner@example.com")
    project = await create_project(client, headers)

    todo = await _create_todo(client, headers, project["id"], due_date="2026-11-01")
    assert todo["status"] == "OPEN"
    assert todo["due_date"] == "2026-11-01"

    update = await client.put(
        f"/api/todos/{todo['id']}",
        json={"status": "IN_PROGRESS", "due_date": None},
        headers=headers,
    )
    assert update.status_code == 200
    assert update.json()["status"] == "IN_PROGRESS"
    assert update.json()["due_date"] is None

    listing = await client.get("/api/todos", params={"projectId": project["id"]}, headers=headers)
    assert [item["id"] for item in listing.json()] == [todo["id"]]

    delete = await client.delete(f"/api/todos/{todo['id']}", headers=headers)
    assert delete.status_code == 204


@pytest.mark.anyio
async def test_assignee_can_update_but_not_delete(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    dev = await register_and_login(client, "dev@example.com")
    project = await create_project(client, owner)
    membership = await invite_and_accept(client, owner, dev, project["id"], "dev@example.com")
    todo = await _create_todo(client, owner, project["id"], assignee_id=membership["profile_id"])

    update = await client.put(f"/api/todos/{todo['id']}", json={"status": "READY_FOR_QA"}, headers=dev)
    assert update.status_code == 200
    assert (await client.delete(f"/api/todos/{todo['id']}", headers=dev)).status_code == 404


@pytest.mark.anyio
async def test_qa_queue_lists_ready_items(client: AsyncClient):
    headers = await register_and_login(client, "owner@example.com")
    project = await create_project(client, headers)
    ready = await _create_todo(client, headers, project["id"], status="READY_FOR_QA")
    await _create_todo(client, headers, project["id"], status="OPEN")

    response = await client.get("/api/qa", params={"projectId": project["id"]}, headers=headers)
    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [ready["id"]]

    everything = await client.get("/api/qa", headers=headers)
    assert [item["id"] for item in everything.json()] == [ready["id"]]


@pytest.mark.anyio
async def test_owner_approves_and_rejects_qa(client: AsyncClient):
    headers = await register_and_login(client, "owner@example.com")
    project = await create_project(client, headers)
    approved = await _create_todo(client, headers, project["id"], status="READY_FOR_QA")
    rejected = await _create_todo(client, headers, project["id"], status="READY_FOR_QA")

    response = await client.post(f"/api/qa/{approved['id']}/verify", json={"approved": True}, headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "DONE"

    response = await client.post(f"/api/qa/{rejected['id']}/verify", json={"approved": False}, headers=headers)
    assert response.json()["status"] == "IN_PROGRESS"

    again = await client.post(f"/api/qa/{approved['id']}/verify", json={"approved": True}, headers=headers)
    assert again.status_code == 409


@pytest.mark.anyio
async def test_qa_verification_requires_tester_or_owner(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    dev = await register_and_login(client, "dev@example.com")
    tester = await register_and_login(client, "tester@example.com")
    project = await create_project(client, owner)
    await invite_and_accept(client, owner, dev, project["id"], "dev@example.com", role="developer")
    await invite_and_accept(client, owner, tester, project["id"], "tester@example.com", role="tester")
    todo = await _create_todo(client, owner, project["id"], status="READY_FOR_QA")

    as_dev = await client.post(f"/api/qa/{todo['id']}/verify", json={"approved": True}, headers=dev)
    assert as_dev.status_code == 403

    as_tester = await client.post(f"/api/qa/{todo['id']}/verify", json={"approved": True}, headers=tester)
    assert as_tester.status_code == 200
    assert as_tester.json()["status"] == "DONE"


@pytest.mark.anyio
async def test_bulk_assign_and_unassign(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    dev = await register_and_login(client, "dev@example.com")
    project = await create_project(client, owner)
    await invite_and_accept(client, owner, dev, project["id"], "dev@example.com")
    dev_id = (await client.get("/api/me", headers=dev)).json()["id"]
    todos = [await _create_todo(client, owner, project["id"]) for _ in range(3)]
    ids = [todo["id"] for todo in todos[:2]]

    assigned = await client.post("/api/todos/assign", json={"ids": ids, "assignee_id": dev_id}, headers=owner)
    assert assigned.status_code == 200
    assert [todo["assignee_id"] for todo in assigned.json()] == [dev_id, dev_id]

    mine = (await client.get("/api/todos", headers=dev)).json()
    assert sorted(todo["id"] for todo in mine) == ids

    cleared = await client.post("/api/todos/assign", json={"ids": ids, "assignee_id": None}, headers=owner)
    assert [todo["assignee_id"] for todo in cleared.json()] == [None, None]
    assert (await client.get("/api/todos", headers=dev)).json() == []


@pytest.mark.anyio
async def test_bulk_assign_rejects_foreign_todos(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    stranger = await register_and_login(client, "stranger@example.com")
    project = await create_project(client, owner)
    todo = await _create_todo(client, owner, project["id"])
    stranger_id = (await client.get("/api/me", headers=stranger)).json()["id"]

    response = await client.post(
        "/api/todos/assign",
        json={"ids": [todo["id"]], "assignee_id": stranger_id},
        headers=stranger,
    )
    assert response.status_code == 404
    assert (await client.get(f"/api/todos/{todo['id']}", headers=owner)).json()["assignee_id"] is None

    missing_field = await client.post("/api/todos/assign", json={"ids": [todo["id"]]}, headers=owner)
    assert missing_field.status_code == 400
