from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, Response, status
from sqlalchemy import delete, select

from bugflow.api import deps
from bugflow.core.context import RequestContext
from bugflow.core.errors import NotFound, ValidationFailed
from bugflow.models.bug import Bug
from bugflow.models.invitation import Invitation
from bugflow.models.project import Project
from bugflow.models.team import Team, TeamMember
from bugflow.models.time_entry import TimeEntry
from bugflow.models.todo import Todo
from bugflow.schemas.project import (
    AccessibleProjectResponse,
    ProjectCreateRequest,
    ProjectResponse,
    ProjectUpdateRequest,
)
from bugflow.services import access

logger = logging.getLogger("bugflow.projects")

router = APIRouter(prefix="/projects", tags=["projects"])


def _accessible_response(project: Project, role: str) -> AccessibleProjectResponse:
    return AccessibleProjectResponse(
        id=project.id,
        name=project.name,
        description=project.description,
        owner_user_id=project.owner_user_id,
        created_at=project.created_at,
        updated_at=project.updated_at,
        role=role,
    )


async def _list_accessible(ctx: RequestContext) -> list[AccessibleProjectResponse]:
    project_ids = await access.accessible_project_ids(ctx.db, ctx.user.id)
    if not project_ids:
        return []

    stmt = (
        select(Project)
        .where(Project.id.in_(project_ids))
        .order_by(Project.created_at.desc(), Project.id.desc())
    )
    projects = (await ctx.db.execute(stmt)).scalars().all()
    grants = await access.list_membership_grants(ctx.db, ctx.user.id)
    return [
        _accessible_response(project, access.determine_role(ctx.user.id, project, grants))
        for project in projects
    ]


@router.get("", response_model=list[ProjectResponse])
async def list_projects(ctx: RequestContext = Depends(deps.get_context)) -> list[ProjectResponse]:
    """Projetos dos quais o usuário é owner, mais recentes primeiro."""
    stmt = (
        select(Project)
        .where(Project.owner_user_id == ctx.user.id)
        .order_by(Project.created_at.desc(), Project.id.desc())
    )
    result = await ctx.db.execute(stmt)
    return [ProjectResponse.model_validate(project) for project in result.scalars().all()]


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreateRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> ProjectResponse:
    name = payload.name.strip()
    if not name:
        raise ValidationFailed("Nome do projeto é obrigatório")

    project = Project(
        name=name,
        description=payload.description,
        owner_user_id=ctx.user.id,
    )
    ctx.db.add(project)
    await ctx.db.commit()
    await ctx.db.refresh(project)

    logger.info("Projeto %s criado por %s", project.id, ctx.user.id)
    return ProjectResponse.model_validate(project)


@router.get("/accessible", response_model=list[AccessibleProjectResponse])
async def list_accessible_projects(
    ctx: RequestContext = Depends(deps.get_context),
) -> list[AccessibleProjectResponse]:
    """Projetos próprios e projetos em que o usuário é membro, com o papel de cada um."""
    return await _list_accessible(ctx)


@router.get("/current", response_model=AccessibleProjectResponse)
async def get_current_project(
    ctx: RequestContext = Depends(deps.get_context),
    x_project_id: int | None = Header(None, alias="X-Project-Id"),
) -> AccessibleProjectResponse:
    """
    Retorna o projeto ativo.

    Se o header X-Project-Id apontar para um projeto acessível, retorna aquele
    projeto. Caso contrário, retorna o primeiro projeto acessível.
    """
    projects = await _list_accessible(ctx)
    if not projects:
        raise NotFound("Nenhum projeto disponível")

    if x_project_id is not None:
        for project in projects:
            if project.id == x_project_id:
                return project
    return projects[0]


@router.get("/{project_id}", response_model=AccessibleProjectResponse)
async def get_project(
    project_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> AccessibleProjectResponse:
    project, role = await access.require_project_access(ctx, project_id)
    return _accessible_response(project, role)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    payload: ProjectUpdateRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> ProjectResponse:
    """
    Atualiza nome e/ou descrição.

    **Permissão:** owner do projeto
    """
    project = await access.require_owner(ctx, project_id)

    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise ValidationFailed("Nome do projeto é obrigatório")
        project.name = name
    if payload.description is not None:
        project.description = payload.description

    await ctx.db.commit()
    await ctx.db.refresh(project)
    return ProjectResponse.model_validate(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_project(
    project_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> Response:
    """
    Remove o projeto e tudo que pertence a ele.

    **Permissão:** owner do projeto
    """
    project = await access.require_owner(ctx, project_id)

    team_ids = select(Team.id).where(Team.project_id == project.id)
    await ctx.db.execute(delete(TeamMember).where(TeamMember.team_id.in_(team_ids)))
    await ctx.db.execute(delete(Invitation).where(Invitation.project_id == project.id))
    await ctx.db.execute(delete(Team).where(Team.project_id == project.id))
    await ctx.db.execute(delete(TimeEntry).where(TimeEntry.project_id == project.id))
    await ctx.db.execute(delete(Bug).where(Bug.project_id == project.id))
    await ctx.db.execute(delete(Todo).where(Todo.project_id == project.id))
    await ctx.db.delete(project)
    await ctx.db.commit()

    logger.info("Projeto %s removido por %s", project_id, ctx.user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
