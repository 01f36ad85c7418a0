from __future__ import annotations

import logging
import uuid
from collections import defaultdict

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from bugflow.api import deps
from bugflow.core.context import RequestContext
from bugflow.core.errors import Conflict, NotFound
from bugflow.models.team import Team, TeamMember
from bugflow.models.user import AppUser
from bugflow.schemas.team import (
    TeamCreateRequest,
    TeamMemberResponse,
    TeamMemberRoleUpdateRequest,
    TeamResponse,
    TeamUpdateRequest,
)
from bugflow.services import access

logger = logging.getLogger("bugflow.teams")

router = APIRouter(tags=["teams"])


def _team_response(team: Team, members: list[TeamMemberResponse] | None = None) -> TeamResponse:
    return TeamResponse(
        id=team.id,
        project_id=team.project_id,
        name=team.name,
        description=team.description,
        created_at=team.created_at,
        members=members or [],
    )


def _member_response(member: TeamMember, user: AppUser | None) -> TeamMemberResponse:
    return TeamMemberResponse(
        id=member.id,
        team_id=member.team_id,
        profile_id=member.profile_id,
        role=member.role,
        joined_at=member.joined_at,
        name=user.name if user else None,
        email=user.email if user else None,
    )


async def _get_team_or_404(ctx: RequestContext, team_id: int) -> Team:
    team = await ctx.db.get(Team, team_id)
    if not team:
        raise NotFound("Time não encontrado")
    return team


async def _get_member_or_404(ctx: RequestContext, team_id: int, user_id: uuid.UUID) -> TeamMember:
    stmt = select(TeamMember).where(
        TeamMember.team_id == team_id,
        TeamMember.profile_id == user_id,
    )
    member = (await ctx.db.execute(stmt)).scalar_one_or_none()
    if not member:
        raise NotFound("Membro não encontrado neste time")
    return member


@router.get("/projects/{project_id}/teams", response_model=list[TeamResponse])
async def list_teams(
    project_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> list[TeamResponse]:
    """
    Lista os times do projeto com seus membros.

    **Permissão:** qualquer papel com acesso ao projeto
    """
    project, _role = await access.require_project_access(ctx, project_id)

    stmt = (
        select(Team)
        .where(Team.project_id == project.id)
        .order_by(Team.created_at.asc(), Team.id.asc())
    )
    teams = (await ctx.db.execute(stmt)).scalars().all()
    if not teams:
        return []

    # Uma consulta para os membros de todos os times
    stmt = (
        select(TeamMember, AppUser)
        .join(AppUser, TeamMember.profile_id == AppUser.id)
        .where(TeamMember.team_id.in_([team.id for team in teams]))
        .order_by(TeamMember.joined_at.asc(), TeamMember.id.asc())
    )
    members_by_team: dict[int, list[TeamMemberResponse]] = defaultdict(list)
    for member, user in (await ctx.db.execute(stmt)).all():
        members_by_team[member.team_id].append(_member_response(member, user))

    return [_team_response(team, members_by_team[team.id]) for team in teams]


@router.post(
    "/projects/{project_id}/teams",
    response_model=TeamResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_team(
    project_id: int,
    payload: TeamCreateRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> TeamResponse:
    """
    Cria um time no projeto.

    **Permissão:** owner do projeto
    """
    project = await access.require_owner(ctx, project_id)
    name = payload.name.strip()

    stmt = select(Team.id).where(Team.project_id == project.id, Team.name == name)
    if (await ctx.db.execute(stmt)).scalar_one_or_none() is not None:
        raise Conflict("Já existe um time com este nome no projeto")

    team = Team(project_id=project.id, name=name, description=payload.description)
    ctx.db.add(team)
    try:
        await ctx.db.commit()
    except IntegrityError as exc:
        await ctx.db.rollback()
        raise Conflict("Já existe um time com este nome no projeto") from exc
    await ctx.db.refresh(team)

    logger.info("Time %s criado no projeto %s", team.id, project.id)
    return _team_response(team)


@router.patch("/teams/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: int,
    payload: TeamUpdateRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> TeamResponse:
    team = await _get_team_or_404(ctx, team_id)
    await access.require_owner(ctx, team.project_id)

    if payload.name is not None:
        name = payload.name.strip()
        stmt = select(Team.id).where(
            Team.project_id == team.project_id,
            Team.name == name,
            Team.id != team.id,
        )
        if (await ctx.db.execute(stmt)).scalar_one_or_none() is not None:
            raise Conflict("Já existe um time com este nome no projeto")
        team.name = name
    if payload.description is not None:
        team.description = payload.description

    await ctx.db.commit()
    await ctx.db.refresh(team)
    return _team_response(team)


@router.delete("/teams/{team_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_team(
    team_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> Response:
    team = await _get_team_or_404(ctx, team_id)
    await access.require_owner(ctx, team.project_id)

    await ctx.db.execute(delete(TeamMember).where(TeamMember.team_id == team.id))
    await ctx.db.delete(team)
    await ctx.db.commit()

    logger.info("Time %s removido por %s", team_id, ctx.user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/teams/{team_id}/members/{user_id}", response_model=TeamMemberResponse)
async def update_member_role(
    team_id: int,
    user_id: uuid.UUID,
    payload: TeamMemberRoleUpdateRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> TeamMemberResponse:
    """
    Altera o papel de um membro.

    **Permissão:** owner do projeto
    """
    team = await _get_team_or_404(ctx, team_id)
    await access.require_owner(ctx, team.project_id)
    member = await _get_member_or_404(ctx, team.id, user_id)

    member.role = payload.role
    await ctx.db.commit()
    await ctx.db.refresh(member)

    user = await ctx.db.get(AppUser, member.profile_id)
    return _member_response(member, user)


@router.delete(
    "/teams/{team_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def remove_member(
    team_id: int,
    user_id: uuid.UUID,
    ctx: RequestContext = Depends(deps.get_context),
) -> Response:
    """
    Remove um membro do time.

    **Permissão:** owner do projeto, ou o próprio membro saindo do time
    """
    team = await _get_team_or_404(ctx, team_id)
    if user_id == ctx.user.id:
        await access.require_project_access(ctx, team.project_id)
    else:
        await access.require_owner(ctx, team.project_id)

    member = await _get_member_or_404(ctx, team.id, user_id)
    await ctx.db.delete(member)
    await ctx.db.commit()

    logger.info("Membro %s removido do time %s por %s", user_id, team_id, ctx.user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
