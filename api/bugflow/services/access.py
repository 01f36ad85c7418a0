"""
Resolução de papéis e controle de acesso por projeto.

Toda decisão owner/membro/guest passa por este módulo. O núcleo
(``determine_role``) é uma função pura; as funções assíncronas só buscam os
dados necessários.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, Union

from sqlalchemy import select, union
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bugflow.core.context import RequestContext
from bugflow.core.errors import Forbidden, NotFound
from bugflow.models.project import Project
from bugflow.models.team import Team, TeamMember
from bugflow.utils.scope import AllProjects, ProjectScope

logger = logging.getLogger("bugflow.access")

OWNER = "owner"
GUEST = "guest"

# Maior valor vence quando há mais de um vínculo no mesmo projeto
ROLE_PRIORITY = {
    "developer": 3,
    "tester": 2,
    "guest": 1,
}


@dataclass(frozen=True)
class MembershipGrant:
    project_id: int
    team_id: int
    role: str


def determine_role(
    user_id: uuid.UUID,
    project: Union[Project, AllProjects],
    grants: Iterable[MembershipGrant],
) -> str:
    """
    Calcula o papel do usuário no projeto.

    - Visão "todos os projetos": sempre owner
    - ``owner_user_id`` igual ao usuário: owner
    - Caso contrário, o papel de maior privilégio entre os vínculos do projeto
    - Sem vínculo: guest
    """
    if isinstance(project, AllProjects):
        return OWNER
    if project.owner_user_id == user_id:
        return OWNER

    roles = [grant.role for grant in grants if grant.project_id == project.id]
    if not roles:
        return GUEST
    return max(roles, key=lambda role: (ROLE_PRIORITY.get(role, 0), role))


def has_membership(project_id: int, grants: Iterable[MembershipGrant]) -> bool:
    return any(grant.project_id == project_id for grant in grants)


async def list_membership_grants(db: AsyncSession, user_id: uuid.UUID) -> list[MembershipGrant]:
    """Todos os vínculos do usuário, de todos os projetos, numa única consulta."""
    stmt = (
        select(Team.project_id, TeamMember.team_id, TeamMember.role)
        .join(Team, TeamMember.team_id == Team.id)
        .where(TeamMember.profile_id == user_id)
    )
    result = await db.execute(stmt)
    return [
        MembershipGrant(project_id=project_id, team_id=team_id, role=role)
        for project_id, team_id, role in result.all()
    ]


async def _grants_or_empty(db: AsyncSession, user_id: uuid.UUID) -> list[MembershipGrant]:
    # Falha na consulta nunca promove o usuário: sem vínculos == sem acesso
    try:
        return await list_membership_grants(db, user_id)
    except SQLAlchemyError as exc:
        logger.warning("Falha ao buscar vínculos do usuário %s; assumindo guest: %s", user_id, exc)
        return []


@dataclass(frozen=True)
class ResolvedAccess:
    project: Project | None
    role: str
    # owner ou membro de algum time do projeto
    has_access: bool


async def _resolve(ctx: RequestContext, project_id: int) -> ResolvedAccess:
    project = await ctx.db.get(Project, project_id)
    if project is None:
        return ResolvedAccess(project=None, role=GUEST, has_access=False)

    grants = await _grants_or_empty(ctx.db, ctx.user.id)
    role = determine_role(ctx.user.id, project, grants)
    return ResolvedAccess(
        project=project,
        role=role,
        has_access=role == OWNER or has_membership(project.id, grants),
    )


async def resolve_role(ctx: RequestContext, scope: ProjectScope) -> str:
    if isinstance(scope, AllProjects):
        return OWNER

    try:
        resolved = await _resolve(ctx, scope.project_id)
    except SQLAlchemyError as exc:
        logger.warning("Falha ao carregar projeto %s; assumindo guest: %s", scope.project_id, exc)
        return GUEST
    return resolved.role


async def require_project_access(ctx: RequestContext, project_id: int) -> tuple[Project, str]:
    """
    Retorna o projeto e o papel do usuário.

    Raises:
        NotFound: projeto inexistente ou usuário sem acesso (não revela qual dos dois)
    """
    resolved = await _resolve(ctx, project_id)
    if resolved.project is None or not resolved.has_access:
        raise NotFound("Projeto não encontrado")
    return resolved.project, resolved.role


async def require_owner(ctx: RequestContext, project_id: int) -> Project:
    project, role = await require_project_access(ctx, project_id)
    if role != OWNER:
        raise Forbidden("Apenas o owner do projeto pode realizar esta ação")
    return project


async def accessible_project_ids(db: AsyncSession, user_id: uuid.UUID) -> set[int]:
    """Projetos próprios ∪ projetos em que o usuário é membro, sem duplicatas."""
    owned = select(Project.id).where(Project.owner_user_id == user_id)
    member_of = (
        select(Team.project_id)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(TeamMember.profile_id == user_id)
    )
    result = await db.execute(union(owned, member_of))
    return set(result.scalars().all())
