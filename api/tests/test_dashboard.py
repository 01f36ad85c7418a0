import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from bugflow.models.bug import Bug
from bugflow.models.todo import Todo
from bugflow.services import dashboard as dashboard_service
from bugflow.services.dashboard import build_chart_series, build_table_rows, format_mttr
from conftest import create_project, invite_and_accept, register_and_login

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _bug(created_at: datetime, updated_at: datetime | None = None, status: str = "Open", **extra) -> Bug:
    return Bug(
        id=extra.pop("id", 1),
        title=extra.pop("title", "Bug"),
        severity=extra.pop("severity", "MEDIUM"),
        status=status,
        environment="Dev",
        user_id=extra.pop("user_id", uuid.uuid4()),
        project_id=extra.pop("project_id", 1),
        created_at=created_at,
        updated_at=updated_at or created_at,
        **extra,
    )


def test_mttr_is_not_available_without_closed_bugs():
    assert format_mttr([]) == "N/A"
    assert format_mttr([_bug(NOW - timedelta(hours=5), NOW, status="Open")]) == "N/A"


def test_mttr_in_hours_below_one_day():
    bugs = [
        _bug(NOW - timedelta(hours=4), NOW, status="Closed"),
        _bug(NOW - timedelta(hours=7), NOW, status="Closed"),
    ]
    # média de 5.5h arredonda para cima
    assert format_mttr(bugs) == "6h"


def test_mttr_in_days_from_one_day_on():
    assert format_mttr([_bug(NOW - timedelta(hours=24), NOW, status="Closed")]) == "1d"
    assert format_mttr([_bug(NOW - timedelta(hours=60), NOW, status="Closed")]) == "3d"


def test_chart_has_fourteen_utc_days_oldest_first():
    today = NOW.date()
    bugs = [
        _bug(NOW - timedelta(days=2), NOW, status="Closed"),
        _bug(NOW - timedelta(days=2)),
        _bug(NOW - timedelta(days=30)),
    ]

    series = build_chart_series(bugs, today)

    assert len(series) == 14
    assert series[0].date == today - timedelta(days=13)
    assert series[-1].date == today
    by_day = {point.date: point for point in series}
    assert by_day[today - timedelta(days=2)].opened == 2
    assert by_day[today].closed == 1
    assert sum(point.opened for point in series) == 2


def test_chart_buckets_by_utc_calendar_day():
    late_evening_brt = datetime(2026, 10, 17, 23, 30, tzinfo=timezone(timedelta(hours=-3)))
    series = build_chart_series([_bug(late_evening_brt)], date(2026, 10, 18))
    assert series[-1].opened == 1


def test_table_offsets_todo_ids():
    user_id = uuid.uuid4()
    bug = _bug(NOW, id=7)
    todo = Todo(
        id=7,
        title="Todo",
        status="OPEN",
        severity="LOW",
        environment="Dev",
        due_date=date(2026, 11, 1),
        assignee_id=user_id,
        user_id=user_id,
        project_id=1,
    )

    rows = build_table_rows([bug], [todo], {user_id: "Ana"})

    assert [(row.id, row.source) for row in rows] == [(7, "bug"), (10007, "todo")]
    assert rows[1].target == "Ana"
    assert rows[1].limit == date(2026, 11, 1)


async def _seed(client: AsyncClient, headers, project_id: int, bugs: int, todos: int) -> None:
    for index in range(bugs):
        response = await client.post(
            "/api/bugs",
            json={"title": f"Bug {index}", "project_id": project_id, "severity": "CRITICAL"},
            headers=headers,
        )
        assert response.status_code == 201
    for index in range(todos):
        response = await client.post(
            "/api/todos",
            json={"title": f"Todo {index}", "project_id": project_id, "status": "READY_FOR_QA"},
            headers=headers,
        )
        assert response.status_code == 201


@pytest.mark.anyio
async def test_dashboard_single_and_all_projects(client: AsyncClient):
    headers = await register_and_login(client, "owner@example.com")
    first = await create_project(client, headers, "A")
    second = await create_project(client, headers, "B")
    await _seed(client, headers, first["id"], bugs=3, todos=1)
    await _seed(client, headers, second["id"], bugs=5, todos=0)

    single = await client.get("/api/dashboard", params={"projectId": first["id"]}, headers=headers)
    assert single.status_code == 200
    data = single.json()
    assert data["scope"] == "project"
    assert data["project_id"] == first["id"]
    assert data["metrics"]["total_bugs"] == 3
    assert data["metrics"]["open_issues"] == 3
    assert data["metrics"]["critical_open"] == 3
    assert data["metrics"]["ready_for_qa"] == 1
    assert data["metrics"]["mttr"] == "N/A"
    assert len(data["chart_data"]) == 14
    assert data["chart_data"][-1]["opened"] == 3
    assert len(data["table_data"]) == 4
    assert data["has_data"] is True

    everything = await client.get("/api/dashboard", params={"projectId": "undefined"}, headers=headers)
    data = everything.json()
    assert data["scope"] == "all"
    assert data["project_id"] is None
    assert data["metrics"]["total_bugs"] == 8
    assert data["accessible_project_count"] == 2

    omitted = await client.get("/api/dashboard", headers=headers)
    assert omitted.json()["metrics"]["total_bugs"] == 8


@pytest.mark.anyio
async def test_dashboard_only_counts_rows_involving_caller(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    dev = await register_and_login(client, "dev@example.com")
    project = await create_project(client, owner)
    await invite_and_accept(client, owner, dev, project["id"], "dev@example.com")
    await _seed(client, owner, project["id"], bugs=2, todos=0)

    response = await client.get("/api/dashboard", params={"projectId": project["id"]}, headers=dev)
    data = response.json()
    assert response.status_code == 200
    assert data["has_data"] is False
    assert data["metrics"]["total_bugs"] == 0
    assert data["accessible_project_count"] == 1


@pytest.mark.anyio
async def test_dashboard_without_projects_has_no_data(client: AsyncClient):
    headers = await register_and_login(client, "owner@example.com")

    response = await client.get("/api/dashboard", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["has_data"] is False
    assert data["accessible_project_count"] == 0
    assert len(data["chart_data"]) == 14


@pytest.mark.anyio
async def test_dashboard_requires_bearer_token(client: AsyncClient):
    await register_and_login(client, "owner@example.com")

    # Apenas o cookie de sessão
    response = await client.get("/api/dashboard")
    assert response.status_code == 401


@pytest.mark.anyio
async def test_dashboard_rejects_inaccessible_and_invalid_project(client: AsyncClient):
    owner = await register_and_login(client, "owner@example.com")
    stranger = await register_and_login(client, "stranger@example.com")
    project = await create_project(client, owner)

    hidden = await client.get("/api/dashboard", params={"projectId": project["id"]}, headers=stranger)
    assert hidden.status_code == 404

    invalid = await client.get("/api/dashboard", params={"projectId": "abc"}, headers=owner)
    assert invalid.status_code == 400


@pytest.mark.anyio
async def test_dashboard_failure_is_explicit(client: AsyncClient, monkeypatch):
    headers = await register_and_login(client, "owner@example.com")
    project = await create_project(client, headers)
    await _seed(client, headers, project["id"], bugs=1, todos=0)

    def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(dashboard_service, "summarize", broken)

    response = await client.get("/api/dashboard", params={"projectId": project["id"]}, headers=headers)
    assert response.status_code == 500
    assert response.json() == {"error": "Falha ao calcular métricas do dashboard"}
