from __future__ import annotations

from datetime import date as date_type, datetime
from typing import Literal

from pydantic import BaseModel, Field


class DashboardMetrics(BaseModel):
    open_issues: int
    ready_for_qa: int
    mttr: str
    critical_open: int
    total_bugs: int
    total_todos: int
    open_todos: int
    in_progress_todos: int
    done_todos: int
    bugs_by_status: dict[str, int] = Field(default_factory=dict)
    bugs_by_severity: dict[str, int] = Field(default_factory=dict)
    todos_by_status: dict[str, int] = Field(default_factory=dict)


class ChartPoint(BaseModel):
    date: date_type
    opened: int
    closed: int


class DashboardTableRow(BaseModel):
    id: int
    header: str
    type: str
    status: str
    target: str | None = None
    limit: datetime | date_type | None = None
    reviewer: str | None = None
    source: Literal["bug", "todo"]
    project_id: int


class DashboardResponse(BaseModel):
    scope: Literal["project", "all"]
    project_id: int | None = None
    accessible_project_count: int
    has_data: bool
    metrics: DashboardMetrics
    chart_data: list[ChartPoint] = Field(default_factory=list)
    table_data: list[DashboardTableRow] = Field(default_factory=list)
