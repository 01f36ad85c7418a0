from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from bugflow.models.user import AppUser


@dataclass(frozen=True)
class RequestContext:
    """
    Contexto explícito de uma requisição autenticada.

    Substitui estado global de sessão: services recebem usuário e sessão do
    banco por parâmetro.
    """

    db: AsyncSession
    user: AppUser

    @property
    def user_email(self) -> str:
        return self.user.email.lower()
