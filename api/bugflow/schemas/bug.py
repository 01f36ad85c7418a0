from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

Severity = Literal["CRITICAL", "HIGH", "MEDIUM", "LOW"]
BugStatus = Literal["Open", "In Progress", "Ready for QA", "Closed"]
Environment = Literal["Prod", "Stage", "Dev"]


class BugCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str | None = None
    severity: Severity = "MEDIUM"
    status: BugStatus = "Open"
    environment: Environment = "Dev"
    reporter: str | None = Field(default=None, max_length=255)
    assignee_id: UUID | None = None
    project_id: int


class BugUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    severity: Severity | None = None
    status: BugStatus | None = None
    environment: Environment | None = None
    reporter: str | None = Field(default=None, max_length=255)
    assignee_id: UUID | None = None


class BugResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    severity: Severity
    status: BugStatus
    environment: Environment
    reporter: str | None = None
    assignee_id: UUID | None = None
    user_id: UUID
    project_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BugBulkUpdateRequest(BaseModel):
    """Atualiza responsável, status e/ou severidade de vários bugs de uma vez"""

    ids: list[int] = Field(min_length=1, max_length=200)
    assignee_id: UUID | None = None
    status: BugStatus | None = None
    severity: Severity | None = None

    @field_validator("ids")
    @classmethod
    def unique_ids(cls, v: list[int]) -> list[int]:
        return sorted(set(v))

    @model_validator(mode="after")
    def has_changes(self) -> "BugBulkUpdateRequest":
        if not self.changes():
            raise ValueError("Informe ao menos um campo para atualizar")
        return self

    def changes(self) -> dict:
        # assignee_id explícito como null remove o responsável
        values = self.model_dump(exclude_unset=True, exclude={"ids"})
        return {field: value for field, value in values.items() if value is not None or field == "assignee_id"}
