from __future__ import annotations

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from bugflow.schemas.bug import Environment, Severity

TodoStatus = Literal["OPEN", "IN_PROGRESS", "READY_FOR_QA", "DONE"]


class TodoCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    issue_link: str | None = Field(default=None, max_length=1000)
    status: TodoStatus = "OPEN"
    severity: Severity = "MEDIUM"
    due_date: date | None = None
    environment: Environment = "Dev"
    assignee_id: UUID | None = None
    quick_action: str | None = None
    project_id: int


class TodoUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    issue_link: str | None = Field(default=None, max_length=1000)
    status: TodoStatus | None = None
    severity: Severity | None = None
    due_date: date | None = None
    environment: Environment | None = None
    assignee_id: UUID | None = None
    quick_action: str | None = None


class TodoResponse(BaseModel):
    id: int
    title: str
    issue_link: str | None = None
    status: TodoStatus
    severity: Severity
    due_date: date | None = None
    environment: Environment
    assignee_id: UUID | None = None
    quick_action: str | None = None
    user_id: UUID
    project_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QAVerifyRequest(BaseModel):
    approved: bool = Field(description="True conclui o item; False devolve para IN_PROGRESS")


class TodoBulkAssignRequest(BaseModel):
    """Atribui (ou, com null, desatribui) vários todos de uma vez"""

    ids: list[int] = Field(min_length=1, max_length=200)
    assignee_id: UUID | None

    @field_validator("ids")
    @classmethod
    def unique_ids(cls, v: list[int]) -> list[int]:
        return sorted(set(v))
