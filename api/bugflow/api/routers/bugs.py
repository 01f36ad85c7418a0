from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import select

from bugflow.api import deps
from bugflow.core.context import RequestContext
from bugflow.core.errors import NotFound
from bugflow.models.bug import Bug
from bugflow.schemas.bug import BugBulkUpdateRequest, BugCreateRequest, BugResponse, BugUpdateRequest
from bugflow.schemas.time_entry import TimeEntryCreateRequest, TimeEntryListResponse, TimeEntryResponse
from bugflow.services import access, time_tracking
from bugflow.utils.scope import SingleProject, parse_project_scope

logger = logging.getLogger("bugflow.bugs")

router = APIRouter(prefix="/bugs", tags=["bugs"])

NULLABLE_FIELDS = {"description", "reporter", "assignee_id"}


async def _get_bug_or_404(ctx: RequestContext, bug_id: int, *, allow_assignee: bool = False) -> Bug:
    bug = await ctx.db.get(Bug, bug_id)
    if not bug:
        raise NotFound("Bug não encontrado")
    if bug.user_id == ctx.user.id:
        return bug
    if allow_assignee and bug.assignee_id == ctx.user.id:
        return bug
    raise NotFound("Bug não encontrado")


@router.get("", response_model=list[BugResponse])
async def list_bugs(
    project_id: str | None = Query(default=None, alias="projectId"),
    ctx: RequestContext = Depends(deps.get_context),
) -> list[BugResponse]:
    """Bugs criados pelo usuário, opcionalmente filtrados por projeto."""
    scope = parse_project_scope(project_id)

    stmt = select(Bug).where(Bug.user_id == ctx.user.id)
    if isinstance(scope, SingleProject):
        stmt = stmt.where(Bug.project_id == scope.project_id)
    stmt = stmt.order_by(Bug.created_at.desc(), Bug.id.desc())

    result = await ctx.db.execute(stmt)
    return [BugResponse.model_validate(bug) for bug in result.scalars().all()]


@router.post("", response_model=BugResponse, status_code=status.HTTP_201_CREATED)
async def create_bug(
    payload: BugCreateRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> BugResponse:
    project, _role = await access.require_project_access(ctx, payload.project_id)

    bug = Bug(**payload.model_dump(exclude={"project_id"}), project_id=project.id, user_id=ctx.user.id)
    ctx.db.add(bug)
    await ctx.db.commit()
    await ctx.db.refresh(bug)

    logger.info("Bug %s criado no projeto %s", bug.id, project.id)
    return BugResponse.model_validate(bug)


@router.patch("", response_model=list[BugResponse])
async def bulk_update_bugs(
    payload: BugBulkUpdateRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> list[BugResponse]:
    """
    Atualiza vários bugs do usuário numa única transação.

    Se algum id não existir ou não for do usuário, nada é alterado.
    """
    stmt = select(Bug).where(Bug.id.in_(payload.ids), Bug.user_id == ctx.user.id)
    bugs = (await ctx.db.execute(stmt)).scalars().all()
    missing = set(payload.ids) - {bug.id for bug in bugs}
    if missing:
        raise NotFound(f"Bugs não encontrados: {', '.join(str(bug_id) for bug_id in sorted(missing))}")

    changes = payload.changes()
    for bug in bugs:
        for field, value in changes.items():
            setattr(bug, field, value)
    await ctx.db.commit()

    stmt = (
        select(Bug)
        .where(Bug.id.in_(payload.ids))
        .order_by(Bug.id.asc())
        .execution_options(populate_existing=True)
    )
    result = await ctx.db.execute(stmt)

    logger.info("%s bugs atualizados em lote por %s: %s", len(payload.ids), ctx.user.id, sorted(changes))
    return [BugResponse.model_validate(bug) for bug in result.scalars().all()]


@router.get("/{bug_id}", response_model=BugResponse)
async def get_bug(
    bug_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> BugResponse:
    bug = await _get_bug_or_404(ctx, bug_id, allow_assignee=True)
    return BugResponse.model_validate(bug)


@router.put("/{bug_id}", response_model=BugResponse)
async def update_bug(
    bug_id: int,
    payload: BugUpdateRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> BugResponse:
    bug = await _get_bug_or_404(ctx, bug_id)

    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        setattr(bug, field, value)

    await ctx.db.commit()
    await ctx.db.refresh(bug)
    return BugResponse.model_validate(bug)


@router.delete("/{bug_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_bug(
    bug_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> Response:
    bug = await _get_bug_or_404(ctx, bug_id)
    await time_tracking.delete_time_entries(ctx.db, bug)
    await ctx.db.delete(bug)
    await ctx.db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{bug_id}/time-entries", response_model=TimeEntryListResponse)
async def list_bug_time_entries(
    bug_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> TimeEntryListResponse:
    bug = await _get_bug_or_404(ctx, bug_id, allow_assignee=True)
    return await time_tracking.list_time_entries(ctx.db, bug)


@router.post("/{bug_id}/time-entries", response_model=TimeEntryResponse, status_code=status.HTTP_201_CREATED)
async def log_bug_time(
    bug_id: int,
    payload: TimeEntryCreateRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> TimeEntryResponse:
    """Criador ou responsável registram tempo; um bug "Open" passa a "In Progress"."""
    bug = await _get_bug_or_404(ctx, bug_id, allow_assignee=True)
    return await time_tracking.log_time(ctx, bug, payload)
