from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bugflow.api import deps
from bugflow.core.errors import Conflict, ValidationFailed
from bugflow.core.security import clear_session, ensure_password_strength, establish_session, parse_bearer_token
from bugflow.models.user import AppUser
from bugflow.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from bugflow.services import invitations as invitation_service
from bugflow.services.auth import (
    authenticate_user,
    create_user,
    get_user_by_email,
    issue_access_token,
    revoke_access_token,
)
from bugflow.utils.time import utcnow

logger = logging.getLogger("bugflow.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


def build_user_response(user: AppUser) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    payload: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(deps.get_db),
) -> UserResponse:
    """
    Cadastra um novo usuário.

    Com ``invite_token``, o convite correspondente é aceito na mesma transação
    e o usuário já sai logado.
    """
    ensure_password_strength(payload.password)

    email = str(payload.email).lower().strip()
    if await get_user_by_email(db, email):
        raise Conflict("E-mail já cadastrado.")

    now = utcnow()
    invitation = None
    if payload.invite_token:
        invitation = await invitation_service.find_pending_by_token(db, payload.invite_token, now)
        if invitation.email != email:
            raise ValidationFailed(
                f"Este convite foi enviado para {invitation.email}. Use o email correto."
            )

    user = await create_user(db, email=email, password=payload.password, name=payload.name)

    if invitation is not None:
        await invitation_service.apply_acceptance(db, user, invitation.id, now)
        establish_session(request, str(user.id))

    await db.commit()
    await db.refresh(user)

    logger.info("Usuário %s cadastrado%s", user.id, " via convite" if invitation else "")
    return build_user_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(deps.get_db),
) -> TokenResponse:
    user = await authenticate_user(db, payload.email, payload.password)
    raw_token, record = await issue_access_token(db, user)
    establish_session(request, str(user.id))
    await db.commit()
    await db.refresh(record)
    return TokenResponse(
        access_token=raw_token,
        expires_at=record.expires_at,
        user=build_user_response(user),
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def logout(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(deps.get_db),
) -> Response:
    token = parse_bearer_token(authorization)
    if token:
        await revoke_access_token(db, token)
        await db.commit()
    clear_session(request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
