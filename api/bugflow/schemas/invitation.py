from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from bugflow.schemas.team import MemberRole

InvitationStatus = Literal["pending", "accepted", "declined", "expired", "cancelled"]


class InvitationCreateRequest(BaseModel):
    email: EmailStr = Field(description="Email da pessoa convidada (pode ainda não ter conta)")
    name: str | None = Field(default=None, max_length=255)
    role: MemberRole = Field(default="developer", description="Papel no time (developer, tester, guest)")
    team_id: int | None = Field(default=None, description="Time de destino; vazio usa o time padrão do projeto")


class InvitationActionRequest(BaseModel):
    action: Literal["accept", "decline"]


class InvitationResponse(BaseModel):
    id: int
    email: str
    name: str | None = None
    role: MemberRole
    project_id: int
    team_id: int | None = None
    invited_by_user_id: UUID
    status: InvitationStatus
    expires_at: datetime
    created_at: datetime
    updated_at: datetime

    # Project / inviter information (joined)
    project_name: str | None = None
    invited_by_name: str | None = None
    invited_by_email: str | None = None
