from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

MemberRole = Literal["developer", "tester", "guest"]


class TeamCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)


class TeamUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)


class TeamMemberRoleUpdateRequest(BaseModel):
    role: MemberRole = Field(description="Novo papel do membro no time (developer, tester, guest)")


class TeamMemberResponse(BaseModel):
    id: int
    team_id: int
    profile_id: UUID
    role: MemberRole
    joined_at: datetime

    # User information (joined)
    name: str | None = None
    email: str | None = None


class TeamResponse(BaseModel):
    id: int
    project_id: int
    name: str
    description: str | None = None
    created_at: datetime
    members: list[TeamMemberResponse] = Field(default_factory=list)


class MembershipResponse(BaseModel):
    """Membro criado ao aceitar um convite."""
    id: int
    team_id: int
    team_name: str
    project_id: int
    profile_id: UUID
    role: MemberRole
    joined_at: datetime
