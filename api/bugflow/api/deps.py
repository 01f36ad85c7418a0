from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bugflow.core.context import RequestContext
from bugflow.core.errors import Unauthenticated
from bugflow.core.security import current_session_user_id, parse_bearer_token
from bugflow.db.session import get_session_factory
from bugflow.models.user import AppUser
from bugflow.services import auth as auth_service


async def get_db() -> AsyncIterator[AsyncSession]:
    async with get_session_factory()() as session:
        yield session


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> AppUser:
    """Bearer token primeiro; sessão por cookie como alternativa."""
    token = parse_bearer_token(authorization)
    if token:
        user = await auth_service.get_user_by_access_token(db, token)
        if not user:
            raise Unauthenticated("Token inválido ou expirado")
        return user

    user_id = current_session_user_id(request)
    if not user_id:
        raise Unauthenticated("Sessão inválida")

    user = await auth_service.get_user_by_id(db, user_id)
    if not user:
        raise Unauthenticated("Usuário não encontrado")
    return user


async def get_bearer_user(
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> AppUser:
    token = parse_bearer_token(authorization)
    if not token:
        raise Unauthenticated("Token de acesso ausente")
    user = await auth_service.get_user_by_access_token(db, token)
    if not user:
        raise Unauthenticated("Token inválido ou expirado")
    return user


async def get_context(
    user: AppUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RequestContext:
    return RequestContext(db=db, user=user)


async def get_bearer_context(
    user: AppUser = Depends(get_bearer_user),
    db: AsyncSession = Depends(get_db),
) -> RequestContext:
    return RequestContext(db=db, user=user)
