from __future__ import annotations

import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bugflow.core.config import settings
from bugflow.core.errors import Conflict, Unauthenticated
from bugflow.core.security import generate_opaque_token, hash_password, hash_token, verify_password
from bugflow.models.access_token import AccessToken
from bugflow.models.user import AppUser
from bugflow.utils.time import utcnow


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[AppUser]:
    stmt = select(AppUser).where(AppUser.email == email.lower().strip())
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    name: Optional[str] = None,
) -> AppUser:
    user = AppUser(
        email=email.lower().strip(),
        password_hash=hash_password(password),
        name=name,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise Conflict("E-mail já cadastrado.") from exc
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> AppUser:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise Unauthenticated("Credenciais inválidas")
    return user


async def issue_access_token(db: AsyncSession, user: AppUser) -> tuple[str, AccessToken]:
    """Gera um token bearer; o valor em claro só existe na resposta do login."""
    raw_token = generate_opaque_token()
    record = AccessToken(
        user_id=user.id,
        token_hash=hash_token(raw_token),
        expires_at=utcnow() + timedelta(seconds=settings.access_token_ttl_seconds),
    )
    db.add(record)
    await db.flush()
    return raw_token, record


async def get_user_by_access_token(db: AsyncSession, raw_token: str) -> Optional[AppUser]:
    stmt = (
        select(AppUser)
        .join(AccessToken, AccessToken.user_id == AppUser.id)
        .where(
            AccessToken.token_hash == hash_token(raw_token),
            AccessToken.expires_at > utcnow(),
        )
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def revoke_access_token(db: AsyncSession, raw_token: str) -> None:
    await db.execute(delete(AccessToken).where(AccessToken.token_hash == hash_token(raw_token)))


async def get_user_by_id(db: AsyncSession, user_id: str) -> Optional[AppUser]:
    try:
        user_uuid = uuid.UUID(str(user_id))
    except ValueError:
        return None
    return await db.get(AppUser, user_uuid)
