"""
Agregação do dashboard: métricas, série de 14 dias e tabela combinada.

A parte de cálculo é pura (recebe listas de Bug/Todo e o "agora"); apenas
``compute_dashboard`` acessa o banco.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from fastapi import HTTPException
from sqlalchemy import or_, select

from bugflow.core.context import RequestContext
from bugflow.core.errors import BackendUnavailable
from bugflow.models.bug import BUG_SEVERITIES, BUG_STATUSES, Bug
from bugflow.models.todo import TODO_STATUSES, Todo
from bugflow.models.user import AppUser
from bugflow.schemas.dashboard import (
    ChartPoint,
    DashboardMetrics,
    DashboardResponse,
    DashboardTableRow,
)
from bugflow.services import access
from bugflow.utils.scope import AllProjects, ProjectScope
from bugflow.utils.time import as_utc, utc_day, utcnow

logger = logging.getLogger("bugflow.dashboard")

CHART_DAYS = 14
TODO_ID_OFFSET = 10000
DASHBOARD_FAILURE = "Falha ao calcular métricas do dashboard"


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_mttr(bugs: Sequence[Bug]) -> str:
    """
    Tempo médio de resolução dos bugs fechados.

    ``"N/A"`` sem bugs fechados; horas arredondadas quando abaixo de 24h,
    senão dias arredondados.
    """
    closed = [bug for bug in bugs if bug.status == "Closed"]
    if not closed:
        return "N/A"

    total_seconds = sum(
        (as_utc(bug.updated_at) - as_utc(bug.created_at)).total_seconds() for bug in closed
    )
    avg_seconds = max(total_seconds / len(closed), 0.0)

    hours = _round_half_up(avg_seconds / 3600)
    if hours < 24:
        return f"{hours}h"
    return f"{_round_half_up(avg_seconds / 86400)}d"


def build_chart_series(bugs: Sequence[Bug], today: date) -> list[ChartPoint]:
    opened = Counter(utc_day(bug.created_at) for bug in bugs)
    closed = Counter(utc_day(bug.updated_at) for bug in bugs if bug.status == "Closed")

    points = []
    for offset in range(CHART_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        points.append(ChartPoint(date=day, opened=opened[day], closed=closed[day]))
    return points


def build_table_rows(
    bugs: Sequence[Bug],
    todos: Sequence[Todo],
    assignee_names: dict[uuid.UUID, str],
) -> list[DashboardTableRow]:
    rows = [
        DashboardTableRow(
            id=bug.id,
            header=bug.title,
            type=bug.severity,
            status=bug.status,
            target=assignee_names.get(bug.assignee_id) if bug.assignee_id else None,
            limit=bug.created_at,
            reviewer=bug.reporter,
            source="bug",
            project_id=bug.project_id,
        )
        for bug in bugs
    ]
    rows.extend(
        DashboardTableRow(
            # Bugs e todos dividem a mesma tabela
            id=todo.id + TODO_ID_OFFSET,
            header=todo.title,
            type=todo.severity,
            status=todo.status,
            target=assignee_names.get(todo.assignee_id) if todo.assignee_id else None,
            limit=todo.due_date,
            reviewer=None,
            source="todo",
            project_id=todo.project_id,
        )
        for todo in todos
    )
    return rows


def summarize(bugs: Sequence[Bug], todos: Sequence[Todo]) -> DashboardMetrics:
    bug_status = Counter(bug.status for bug in bugs)
    bug_severity = Counter(bug.severity for bug in bugs)
    todo_status = Counter(todo.status for todo in todos)

    return DashboardMetrics(
        open_issues=bug_status["Open"],
        ready_for_qa=todo_status["READY_FOR_QA"],
        mttr=format_mttr(bugs),
        critical_open=sum(1 for bug in bugs if bug.severity == "CRITICAL" and bug.status == "Open"),
        total_bugs=len(bugs),
        total_todos=len(todos),
        open_todos=todo_status["OPEN"],
        in_progress_todos=todo_status["IN_PROGRESS"],
        done_todos=todo_status["DONE"],
        bugs_by_status={status: bug_status[status] for status in BUG_STATUSES},
        bugs_by_severity={severity: bug_severity[severity] for severity in BUG_SEVERITIES},
        todos_by_status={status: todo_status[status] for status in TODO_STATUSES},
    )


async def _load_assignee_names(ctx: RequestContext, bugs: Sequence[Bug], todos: Sequence[Todo]) -> dict[uuid.UUID, str]:
    ids = {row.assignee_id for row in [*bugs, *todos] if row.assignee_id is not None}
    if not ids:
        return {}
    result = await ctx.db.execute(select(AppUser).where(AppUser.id.in_(ids)))
    return {user.id: user.name or user.email for user in result.scalars().all()}


async def _compute(ctx: RequestContext, scope: ProjectScope, now: datetime) -> DashboardResponse:
    if isinstance(scope, AllProjects):
        project_ids = await access.accessible_project_ids(ctx.db, ctx.user.id)
        project_id = None
    else:
        project, _role = await access.require_project_access(ctx, scope.project_id)
        project_ids = {project.id}
        project_id = project.id

    bugs: list[Bug] = []
    todos: list[Todo] = []
    if project_ids:
        bug_stmt = (
            select(Bug)
            .where(
                Bug.project_id.in_(project_ids),
                or_(Bug.user_id == ctx.user.id, Bug.assignee_id == ctx.user.id),
            )
            .order_by(Bug.created_at.desc(), Bug.id.desc())
        )
        todo_stmt = (
            select(Todo)
            .where(
                Todo.project_id.in_(project_ids),
                or_(Todo.user_id == ctx.user.id, Todo.assignee_id == ctx.user.id),
            )
            .order_by(Todo.created_at.desc(), Todo.id.desc())
        )
        bugs = list((await ctx.db.execute(bug_stmt)).scalars().all())
        todos = list((await ctx.db.execute(todo_stmt)).scalars().all())

    assignee_names = await _load_assignee_names(ctx, bugs, todos)

    logger.debug(
        "Dashboard de %s: %d bugs, %d todos em %d projetos",
        ctx.user.id,
        len(bugs),
        len(todos),
        len(project_ids),
    )

    return DashboardResponse(
        scope="all" if project_id is None else "project",
        project_id=project_id,
        accessible_project_count=len(project_ids),
        has_data=bool(bugs or todos),
        metrics=summarize(bugs, todos),
        chart_data=build_chart_series(bugs, utc_day(now)),
        table_data=build_table_rows(bugs, todos, assignee_names),
    )


async def compute_dashboard(
    ctx: RequestContext,
    scope: ProjectScope,
    now: datetime | None = None,
) -> DashboardResponse:
    """
    Calcula o dashboard do usuário para um projeto ou para todos os acessíveis.

    Erros de acesso (404) são propagados; qualquer outra falha vira 500 com
    mensagem explícita em vez de métricas zeradas.
    """
    try:
        return await _compute(ctx, scope, now or utcnow())
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Erro ao calcular dashboard de %s", ctx.user.id)
        raise BackendUnavailable(DASHBOARD_FAILURE) from exc
