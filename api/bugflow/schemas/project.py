from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

ProjectRole = Literal["owner", "developer", "tester", "guest"]


class ProjectCreateRequest(BaseModel):
    name: str = Field(default="", max_length=255)
    description: str | None = Field(default=None, max_length=5000)


class ProjectUpdateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=5000)


class ProjectResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    owner_user_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AccessibleProjectResponse(ProjectResponse):
    role: ProjectRole
