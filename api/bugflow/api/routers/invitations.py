from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from bugflow.api import deps
from bugflow.core.context import RequestContext
from bugflow.models.team import Team, TeamMember
from bugflow.schemas.invitation import (
    InvitationActionRequest,
    InvitationCreateRequest,
    InvitationResponse,
)
from bugflow.schemas.team import MembershipResponse
from bugflow.services import invitations as invitation_service

router = APIRouter(tags=["invitations"])


def _membership_response(member: TeamMember, team: Team) -> MembershipResponse:
    return MembershipResponse(
        id=member.id,
        team_id=team.id,
        team_name=team.name,
        project_id=team.project_id,
        profile_id=member.profile_id,
        role=member.role,
        joined_at=member.joined_at,
    )


@router.post(
    "/projects/{project_id}/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invitation(
    project_id: int,
    payload: InvitationCreateRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> InvitationResponse:
    """
    Convida alguém por email para um time do projeto.

    **Permissão:** owner do projeto
    """
    return await invitation_service.create_invitation(ctx, project_id, payload)


@router.get("/projects/{project_id}/invitations", response_model=list[InvitationResponse])
async def list_project_invitations(
    project_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> list[InvitationResponse]:
    return await invitation_service.list_project_invitations(ctx, project_id)


@router.get("/invitations", response_model=list[InvitationResponse])
async def list_my_invitations(
    ctx: RequestContext = Depends(deps.get_context),
) -> list[InvitationResponse]:
    """Convites pendentes e válidos enviados para o email do usuário logado."""
    return await invitation_service.list_received_invitations(ctx)


@router.get("/invitations/{invitation_id}", response_model=InvitationResponse)
async def get_invitation(
    invitation_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> InvitationResponse:
    return await invitation_service.get_invitation(ctx, invitation_id)


@router.put("/invitations/{invitation_id}", response_model=MembershipResponse | InvitationResponse)
async def respond_to_invitation(
    invitation_id: int,
    payload: InvitationActionRequest,
    ctx: RequestContext = Depends(deps.get_context),
) -> MembershipResponse | InvitationResponse:
    """
    Aceita ou recusa um convite.

    - ``accept`` retorna o vínculo criado
    - ``decline`` retorna o convite atualizado
    """
    if payload.action == "accept":
        member, team = await invitation_service.accept_invitation(ctx, invitation_id)
        return _membership_response(member, team)
    return await invitation_service.decline_invitation(ctx, invitation_id)


@router.post("/invitations/{invitation_id}/accept", response_model=MembershipResponse)
async def accept_invitation(
    invitation_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> MembershipResponse:
    member, team = await invitation_service.accept_invitation(ctx, invitation_id)
    return _membership_response(member, team)


@router.post("/invitations/{invitation_id}/decline", response_model=InvitationResponse)
async def decline_invitation(
    invitation_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> InvitationResponse:
    return await invitation_service.decline_invitation(ctx, invitation_id)


@router.delete(
    "/invitations/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def cancel_invitation(
    invitation_id: int,
    ctx: RequestContext = Depends(deps.get_context),
) -> Response:
    """
    Cancela um convite pendente.

    **Permissão:** owner do projeto
    """
    await invitation_service.cancel_invitation(ctx, invitation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
