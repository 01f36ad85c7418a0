"""
Ciclo de vida dos convites: criação, listagem, aceite, recusa e cancelamento.

Estados: ``pending -> accepted | declined | cancelled``. Um convite pendente com
``expires_at <= agora`` é tratado como expirado em toda leitura; não existe job
de varredura. Aceite e recusa são um único UPDATE condicional guardado por
``status = 'pending'``, então uma segunda chamada concorrente não encontra linha
para atualizar e falha com 409.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bugflow.core.config import settings
from bugflow.core.context import RequestContext
from bugflow.core.errors import Conflict, Gone, NotFound
from bugflow.core.security import generate_opaque_token
from bugflow.models.invitation import Invitation
from bugflow.models.project import Project
from bugflow.models.team import Team, TeamMember
from bugflow.models.user import AppUser
from bugflow.schemas.invitation import InvitationCreateRequest, InvitationResponse
from bugflow.services import access
from bugflow.services.email import send_invitation_email
from bugflow.utils.scope import SingleProject
from bugflow.utils.time import as_utc, utcnow

logger = logging.getLogger("bugflow.invitations")

DEFAULT_TEAM_NAME = "Default"


def is_expired(invitation: Invitation, now: datetime) -> bool:
    return as_utc(invitation.expires_at) <= now


def effective_status(invitation: Invitation, now: datetime) -> str:
    if invitation.status == "pending" and is_expired(invitation, now):
        return "expired"
    return invitation.status


def build_invitation_response(
    invitation: Invitation,
    now: datetime,
    *,
    project_name: str | None = None,
    inviter: AppUser | None = None,
) -> InvitationResponse:
    return InvitationResponse(
        id=invitation.id,
        email=invitation.email,
        name=invitation.name,
        role=invitation.role,
        project_id=invitation.project_id,
        team_id=invitation.team_id,
        invited_by_user_id=invitation.invited_by_user_id,
        status=effective_status(invitation, now),
        expires_at=invitation.expires_at,
        created_at=invitation.created_at,
        updated_at=invitation.updated_at,
        project_name=project_name,
        invited_by_name=inviter.name if inviter else None,
        invited_by_email=inviter.email if inviter else None,
    )


async def _users_by_id(db: AsyncSession, user_ids: set[uuid.UUID]) -> dict[uuid.UUID, AppUser]:
    if not user_ids:
        return {}
    result = await db.execute(select(AppUser).where(AppUser.id.in_(user_ids)))
    return {user.id: user for user in result.scalars().all()}


async def _project_names(db: AsyncSession, project_ids: set[int]) -> dict[int, str]:
    if not project_ids:
        return {}
    result = await db.execute(select(Project.id, Project.name).where(Project.id.in_(project_ids)))
    return {project_id: name for project_id, name in result.all()}


async def _enrich(db: AsyncSession, invitations: list[Invitation], now: datetime) -> list[InvitationResponse]:
    """Anexa nome do projeto e de quem convidou com duas consultas em lote."""
    project_names = await _project_names(db, {inv.project_id for inv in invitations})
    inviters = await _users_by_id(db, {inv.invited_by_user_id for inv in invitations})

    responses = []
    for invitation in invitations:
        if invitation.project_id not in project_names:
            continue
        responses.append(
            build_invitation_response(
                invitation,
                now,
                project_name=project_names[invitation.project_id],
                inviter=inviters.get(invitation.invited_by_user_id),
            )
        )
    return responses


async def create_invitation(
    ctx: RequestContext,
    project_id: int,
    payload: InvitationCreateRequest,
    now: datetime | None = None,
) -> InvitationResponse:
    """
    Cria um convite pendente para o email informado.

    **Permissão:** owner do projeto

    **Validações:**
    - O email não pode pertencer ao owner nem a um membro do projeto
    - Não pode haver convite pendente e válido para o mesmo (email, projeto)
    - ``team_id``, se informado, deve ser um time do projeto
    """
    now = now or utcnow()
    db = ctx.db
    project = await access.require_owner(ctx, project_id)

    invited_email = str(payload.email).lower().strip()

    if invited_email == ctx.user_email:
        raise Conflict("O owner já tem acesso total a este projeto")

    stmt = (
        select(TeamMember.id)
        .join(Team, TeamMember.team_id == Team.id)
        .join(AppUser, TeamMember.profile_id == AppUser.id)
        .where(AppUser.email == invited_email, Team.project_id == project.id)
        .limit(1)
    )
    if (await db.execute(stmt)).scalar_one_or_none() is not None:
        raise Conflict("Usuário com este email já é membro deste projeto")

    if payload.team_id is not None:
        team = await db.get(Team, payload.team_id)
        if team is None or team.project_id != project.id:
            raise NotFound("Time não encontrado neste projeto")

    stmt = select(Invitation).where(
        Invitation.email == invited_email,
        Invitation.project_id == project.id,
        Invitation.status == "pending",
    )
    for existing in (await db.execute(stmt)).scalars().all():
        if not is_expired(existing, now):
            raise Conflict("Já existe um convite pendente para este email")
        # Libera o índice único de pendentes para o novo convite
        existing.status = "expired"
        existing.updated_at = now
    await db.flush()

    invitation = Invitation(
        email=invited_email,
        name=payload.name,
        role=payload.role,
        project_id=project.id,
        team_id=payload.team_id,
        invited_by_user_id=ctx.user.id,
        status="pending",
        token=generate_opaque_token(),
        expires_at=now + timedelta(days=settings.invitation_ttl_days),
    )
    db.add(invitation)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise Conflict("Já existe um convite pendente para este email") from exc
    await db.refresh(invitation)

    logger.info(
        "Convite %s criado para %s no projeto %s (%s)",
        invitation.id,
        invited_email,
        project.id,
        invitation.role,
    )

    try:
        await send_invitation_email(
            to_email=invited_email,
            invitee_name=invitation.name,
            inviter_name=ctx.user.name or ctx.user.email,
            project_name=project.name,
            role=invitation.role,
            invite_token=invitation.token,
            expires_at=as_utc(invitation.expires_at),
        )
    except Exception:
        # O convite já existe; o email é só notificação
        logger.warning("Falha ao enviar email do convite %s", invitation.id, exc_info=True)

    return build_invitation_response(invitation, now, project_name=project.name, inviter=ctx.user)


async def list_received_invitations(
    ctx: RequestContext,
    now: datetime | None = None,
) -> list[InvitationResponse]:
    """Convites pendentes e não expirados enviados para o email do usuário."""
    now = now or utcnow()
    stmt = (
        select(Invitation)
        .where(
            Invitation.email == ctx.user_email,
            Invitation.status == "pending",
            Invitation.expires_at > now,
        )
        .order_by(Invitation.created_at.desc(), Invitation.id.desc())
    )
    invitations = list((await ctx.db.execute(stmt)).scalars().all())
    return await _enrich(ctx.db, invitations, now)


async def list_project_invitations(
    ctx: RequestContext,
    project_id: int,
    now: datetime | None = None,
) -> list[InvitationResponse]:
    now = now or utcnow()
    project = await access.require_owner(ctx, project_id)
    stmt = (
        select(Invitation)
        .where(Invitation.project_id == project.id)
        .order_by(Invitation.created_at.desc(), Invitation.id.desc())
    )
    invitations = list((await ctx.db.execute(stmt)).scalars().all())
    return await _enrich(ctx.db, invitations, now)


async def get_invitation(
    ctx: RequestContext,
    invitation_id: int,
    now: datetime | None = None,
) -> InvitationResponse:
    """Visível para o convidado e para o owner do projeto; 404 para os demais."""
    now = now or utcnow()
    invitation = await ctx.db.get(Invitation, invitation_id)
    if invitation is None:
        raise NotFound("Convite não encontrado")

    if invitation.email != ctx.user_email:
        role = await access.resolve_role(ctx, SingleProject(invitation.project_id))
        if role != access.OWNER:
            raise NotFound("Convite não encontrado")

    enriched = await _enrich(ctx.db, [invitation], now)
    if not enriched:
        raise NotFound("Convite não encontrado")
    return enriched[0]


async def _raise_transition_failure(
    db: AsyncSession,
    email: str,
    invitation_id: int,
    now: datetime,
) -> None:
    """Explica por que o UPDATE condicional não encontrou linha."""
    invitation = await db.get(Invitation, invitation_id, populate_existing=True)
    if invitation is None or invitation.email != email:
        raise NotFound("Convite não encontrado")
    if invitation.status != "pending":
        raise Conflict(f"Convite já foi {invitation.status}")
    if is_expired(invitation, now):
        raise Gone("Convite expirado")
    raise Conflict("Convite não pôde ser processado")


async def _transition(
    db: AsyncSession,
    user: AppUser,
    invitation_id: int,
    new_status: str,
    now: datetime,
) -> Invitation:
    # Lido antes de qualquer rollback, que expira as instâncias da sessão
    email = user.email.lower()
    stmt = (
        update(Invitation)
        .where(
            Invitation.id == invitation_id,
            Invitation.email == email,
            Invitation.status == "pending",
            Invitation.expires_at > now,
        )
        .values(status=new_status, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount != 1:
        await db.rollback()
        await _raise_transition_failure(db, email, invitation_id, now)

    invitation = await db.get(Invitation, invitation_id, populate_existing=True)
    if invitation is None:
        raise NotFound("Convite não encontrado")
    return invitation


async def _target_team(db: AsyncSession, invitation: Invitation) -> Team:
    """Time do convite; senão o time mais antigo do projeto; senão cria o time padrão."""
    if invitation.team_id is not None:
        team = await db.get(Team, invitation.team_id)
        if team is not None and team.project_id == invitation.project_id:
            return team

    stmt = (
        select(Team)
        .where(Team.project_id == invitation.project_id)
        .order_by(Team.created_at.asc(), Team.id.asc())
        .limit(1)
    )
    team = (await db.execute(stmt)).scalar_one_or_none()
    if team is not None:
        return team

    team = Team(
        project_id=invitation.project_id,
        name=DEFAULT_TEAM_NAME,
        description="Criado automaticamente ao aceitar um convite",
    )
    db.add(team)
    await db.flush()
    logger.info("Time padrão %s criado no projeto %s", team.id, invitation.project_id)
    return team


async def apply_acceptance(
    db: AsyncSession,
    user: AppUser,
    invitation_id: int,
    now: datetime,
) -> tuple[TeamMember, Team]:
    """
    Marca o convite como aceito e cria o vínculo, sem commit.

    O chamador decide o commit, o que permite combinar o aceite com outras
    escritas (ex: cadastro via token) na mesma transação.
    """
    invitation = await _transition(db, user, invitation_id, "accepted", now)
    team = await _target_team(db, invitation)

    stmt = select(TeamMember.id).where(
        TeamMember.team_id == team.id,
        TeamMember.profile_id == user.id,
    )
    if (await db.execute(stmt)).scalar_one_or_none() is not None:
        await db.rollback()
        raise Conflict("Você já é membro deste time")

    member = TeamMember(team_id=team.id, profile_id=user.id, role=invitation.role)
    db.add(member)
    await db.flush()
    return member, team


async def accept_invitation(
    ctx: RequestContext,
    invitation_id: int,
    now: datetime | None = None,
) -> tuple[TeamMember, Team]:
    """
    Aceita o convite e cria o membro do time na mesma transação.

    Raises:
        NotFound: convite inexistente ou de outro email
        Conflict: convite já processado, ou usuário já é membro do time
        Gone: convite expirado
    """
    now = now or utcnow()
    member, team = await apply_acceptance(ctx.db, ctx.user, invitation_id, now)
    try:
        await ctx.db.commit()
    except IntegrityError as exc:
        await ctx.db.rollback()
        raise Conflict("Você já é membro deste time") from exc
    await ctx.db.refresh(member)

    logger.info("Convite %s aceito por %s (time %s)", invitation_id, ctx.user.id, team.id)
    return member, team


async def decline_invitation(
    ctx: RequestContext,
    invitation_id: int,
    now: datetime | None = None,
) -> InvitationResponse:
    now = now or utcnow()
    invitation = await _transition(ctx.db, ctx.user, invitation_id, "declined", now)
    await ctx.db.commit()
    await ctx.db.refresh(invitation)

    logger.info("Convite %s recusado por %s", invitation_id, ctx.user.id)
    return build_invitation_response(invitation, now)


async def find_pending_by_token(
    db: AsyncSession,
    token: str,
    now: datetime,
) -> Invitation:
    stmt = select(Invitation).where(Invitation.token == token)
    invitation = (await db.execute(stmt)).scalar_one_or_none()
    if invitation is None:
        raise NotFound("Convite inválido ou já utilizado")
    if invitation.status != "pending":
        raise Conflict(f"Convite já foi {invitation.status}")
    if is_expired(invitation, now):
        raise Gone("Convite expirado")
    return invitation


async def cancel_invitation(
    ctx: RequestContext,
    invitation_id: int,
) -> None:
    """
    Cancela um convite pendente.

    **Permissão:** owner do projeto do convite
    """
    invitation = await ctx.db.get(Invitation, invitation_id)
    if invitation is None:
        raise NotFound("Convite não encontrado")

    await access.require_owner(ctx, invitation.project_id)

    if invitation.status != "pending":
        raise Conflict(f"Convite já foi {invitation.status}")
    if is_expired(invitation, utcnow()):
        raise Gone("Convite expirado")

    invitation.status = "cancelled"
    await ctx.db.commit()
    logger.info("Convite %s cancelado por %s", invitation_id, ctx.user.id)
