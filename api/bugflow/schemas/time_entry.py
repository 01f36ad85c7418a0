from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

# Um registro não passa de 24h; sessões maiores são lançadas em partes
MAX_DURATION_SECONDS = 24 * 60 * 60


class TimeEntryCreateRequest(BaseModel):
    duration_seconds: int = Field(gt=0, le=MAX_DURATION_SECONDS)
    notes: str | None = Field(default=None, max_length=2000)


class TimeEntryResponse(BaseModel):
    id: int
    duration_seconds: int
    notes: str | None = None
    todo_id: int | None = None
    bug_id: int | None = None
    project_id: int
    user_id: UUID
    created_at: datetime

    class Config:
        from_attributes = True


class TimeEntryListResponse(BaseModel):
    entries: list[TimeEntryResponse]
    total_seconds: int
