"""
Registro de tempo em todos e bugs.

Registrar tempo num item ainda não iniciado o move para "em andamento"
(``OPEN -> IN_PROGRESS`` para todos, ``Open -> In Progress`` para bugs).
"""

from __future__ import annotations

import logging
from typing import Union

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from bugflow.core.context import RequestContext
from bugflow.models.bug import Bug
from bugflow.models.time_entry import TimeEntry
from bugflow.models.todo import Todo
from bugflow.schemas.time_entry import TimeEntryCreateRequest, TimeEntryListResponse, TimeEntryResponse

logger = logging.getLogger("bugflow.time_tracking")

Trackable = Union[Todo, Bug]

STARTED_STATUS = {
    "OPEN": "IN_PROGRESS",
    "Open": "In Progress",
}


def _target_column(item: Trackable):
    return TimeEntry.todo_id if isinstance(item, Todo) else TimeEntry.bug_id


async def log_time(ctx: RequestContext, item: Trackable, payload: TimeEntryCreateRequest) -> TimeEntryResponse:
    entry = TimeEntry(
        duration_seconds=payload.duration_seconds,
        notes=(payload.notes or "").strip() or None,
        todo_id=item.id if isinstance(item, Todo) else None,
        bug_id=item.id if isinstance(item, Bug) else None,
        project_id=item.project_id,
        user_id=ctx.user.id,
    )
    ctx.db.add(entry)

    if item.status in STARTED_STATUS:
        item.status = STARTED_STATUS[item.status]

    await ctx.db.commit()
    await ctx.db.refresh(entry)

    logger.info(
        "%ss registrados em %s %s por %s",
        entry.duration_seconds,
        type(item).__name__.lower(),
        item.id,
        ctx.user.id,
    )
    return TimeEntryResponse.model_validate(entry)


async def list_time_entries(db: AsyncSession, item: Trackable) -> TimeEntryListResponse:
    stmt = (
        select(TimeEntry)
        .where(_target_column(item) == item.id)
        .order_by(TimeEntry.created_at.desc(), TimeEntry.id.desc())
    )
    entries = [TimeEntryResponse.model_validate(entry) for entry in (await db.execute(stmt)).scalars().all()]
    return TimeEntryListResponse(
        entries=entries,
        total_seconds=sum(entry.duration_seconds for entry in entries),
    )


async def delete_time_entries(db: AsyncSession, item: Trackable) -> None:
    """Remove os registros do item, sem commit."""
    await db.execute(delete(TimeEntry).where(_target_column(item) == item.id))
