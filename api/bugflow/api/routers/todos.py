from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import or_, select

from bugflow.api import deps
from bugflow.core.context import RequestContext
from bugflow.core.errors import Conflict, Forbidden, NotFound
from bugflow.models.todo import Todo
from bugflow.schemas.time_entry import TimeEntryCreateRequest, TimeEntryListResponse, TimeEntryResponse
from bugflow.schemas.todo import (
    QAVerifyRequest,
    TodoBulkAssignRequest,
    TodoCreateRequest,
    TodoResponse,
    TodoUpdateRequest,
)
from bugflow.services import access, time_tracking
from bugflow.utils.scope import AllProjects, SingleProject, parse_project_scope

logger = logging.getLogger("bugflow.todos")

router = APIRouter(tags=["todos"])

NULLABLE_FIELDS = {"issue_link", "due_date", "assignee_id", "quick_action"}
QA_ROLES = {access.OWNER, "tester"}


async def _get_todo_or_404(ctx: RequestContext, todo_id: int, *, allow_assignee: bool = True) -> Todo:
    todo = await ctx.db.get(Todo, todo_id)
    if not todo:
        raise NotFound("Todo não encontrado")
    if todo.user_id == ctx.user.id:
        return todo
    if allow_assignee and todo.assignee_id == ctx.user.id:
        return todo
    raise NotFound("Todo não encontrado")


def _involves_caller(ctx: RequestContext):
    return or_(Todo.user_id == ctx.user.id, Todo.assignee_id == ctx.user.id)


@router.get("/todos", response_model=list[TodoResponse])
async def list_todos(
    project_id: str | None = Query(default=None, alias="projectId"),
    ctx: RequestContext = Depends(deps.get_context),
) -> list[TodoResponse]:
    """Todos criados pelo usuário ou atribuídos a ele."""
    scope = parse_project_scope(project_id)

    stmt = select(Todo).where(_involves_caller(ctx))
    if isinstance(scope, SingleProject):
        stmt = stmt.where(Todo.project_id == scope.project_id)
    stmt = stmt.order_by(Todo.created_at.desc(), Todo.id.desc())

    result = await ctx.db.execute(stmt)
    return [TodoResponse.model_validate(todo) for todo in result.scalars().all()]


@router.post("/todos", response_model=TodoResponse, status_code=status.HTTP_201_CREATED)
async def create_todo(
    payload: TodoCreateRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> TodoResponse:
    project, _role = await access.require_project_access(ctx, payload.project_id)

    todo = Todo(**payload.model_dump(exclude={"project_id"}), project_id=project.id, user_id=ctx.user.id)
    ctx.db.add(todo)
    await ctx.db.commit()
    await ctx.db.refresh(todo)

    logger.info("Todo %s criado no projeto %s", todo.id, project.id)
    return TodoResponse.model_validate(todo)


@router.post("/todos/assign", response_model=list[TodoResponse])
async def bulk_assign_todos(
    payload: TodoBulkAssignRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> list[TodoResponse]:
    """
    Define o responsável de vários todos numa única transação.

    Vale a mesma regra do PUT: criador ou responsável atual. Se algum id
    não for acessível, nada é alterado.
    """
    stmt = select(Todo).where(Todo.id.in_(payload.ids), _involves_caller(ctx))
    todos = (await ctx.db.execute(stmt)).scalars().all()
    missing = set(payload.ids) - {todo.id for todo in todos}
    if missing:
        raise NotFound(f"Todos não encontrados: {', '.join(str(todo_id) for todo_id in sorted(missing))}")

    for todo in todos:
        todo.assignee_id = payload.assignee_id
    await ctx.db.commit()

    stmt = (
        select(Todo)
        .where(Todo.id.in_(payload.ids))
        .order_by(Todo.id.asc())
        .execution_options(populate_existing=True)
    )
    result = await ctx.db.execute(stmt)

    logger.info("%s todos atribuídos a %s por %s", len(payload.ids), payload.assignee_id, ctx.user.id)
    return [TodoResponse.model_validate(todo) for todo in result.scalars().all()]


@router.get("/todos/{todo_id}", response_model=TodoResponse)
async def get_todo(
    todo_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> TodoResponse:
    todo = await _get_todo_or_404(ctx, todo_id)
    return TodoResponse.model_validate(todo)


@router.put("/todos/{todo_id}", response_model=TodoResponse)
async def update_todo(
    todo_id: int,
    payload: TodoUpdateRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> TodoResponse:
    """Criador ou responsável podem atualizar."""
    todo = await _get_todo_or_404(ctx, todo_id)

    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        setattr(todo, field, value)

    await ctx.db.commit()
    await ctx.db.refresh(todo)
    return TodoResponse.model_validate(todo)


@router.delete("/todos/{todo_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_todo(
    todo_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> Response:
    todo = await _get_todo_or_404(ctx, todo_id, allow_assignee=False)
    await time_tracking.delete_time_entries(ctx.db, todo)
    await ctx.db.delete(todo)
    await ctx.db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/todos/{todo_id}/time-entries", response_model=TimeEntryListResponse)
async def list_todo_time_entries(
    todo_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> TimeEntryListResponse:
    todo = await _get_todo_or_404(ctx, todo_id)
    return await time_tracking.list_time_entries(ctx.db, todo)


@router.post(
    "/todos/{todo_id}/time-entries",
    response_model=TimeEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def log_todo_time(
    todo_id: int,
    payload: TimeEntryCreateRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> TimeEntryResponse:
    """Registra tempo no todo; um todo OPEN passa a IN_PROGRESS."""
    todo = await _get_todo_or_404(ctx, todo_id)
    return await time_tracking.log_time(ctx, todo, payload)


@router.get("/qa", response_model=list[TodoResponse])
async def list_ready_for_qa(
    project_id: str | None = Query(default=None, alias="projectId"),
    ctx: RequestContext = Depends(deps.get_context),
) -> list[TodoResponse]:
    """Fila de QA: todos em READY_FOR_QA dos projetos acessíveis."""
    scope = parse_project_scope(project_id)
    if isinstance(scope, AllProjects):
        project_ids = await access.accessible_project_ids(ctx.db, ctx.user.id)
    else:
        project, _role = await access.require_project_access(ctx, scope.project_id)
        project_ids = {project.id}

    if not project_ids:
        return []

    stmt = (
        select(Todo)
        .where(
            Todo.project_id.in_(project_ids),
            Todo.status == "READY_FOR_QA",
            _involves_caller(ctx),
        )
        .order_by(Todo.updated_at.asc(), Todo.id.asc())
    )
    result = await ctx.db.execute(stmt)
    return [TodoResponse.model_validate(todo) for todo in result.scalars().all()]


@router.post("/qa/{todo_id}/verify", response_model=TodoResponse)
async def verify_todo(
    todo_id: int,
    payload: QAVerifyRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> TodoResponse:
    """
    Aprova (DONE) ou reprova (IN_PROGRESS) um item em QA.

    **Permissão:** owner ou tester do projeto
    """
    todo = await ctx.db.get(Todo, todo_id)
    if not todo:
        raise NotFound("Todo não encontrado")

    _project, role = await access.require_project_access(ctx, todo.project_id)
    if role not in QA_ROLES:
        raise Forbidden("Apenas owner ou tester podem verificar itens em QA")
    if todo.status != "READY_FOR_QA":
        raise Conflict("Todo não está aguardando QA")

    todo.status = "DONE" if payload.approved else "IN_PROGRESS"
    await ctx.db.commit()
    await ctx.db.refresh(todo)

    logger.info("Todo %s verificado por %s: %s", todo.id, ctx.user.id, todo.status)
    return TodoResponse.model_validate(todo)
