import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from bugflow.db.base import Base


class TimeEntry(Base):
    """Tempo registrado em um todo ou em um bug (exatamente um dos dois)."""

    __tablename__ = "time_entry"
    __table_args__ = (
        CheckConstraint(
            "(todo_id IS NULL) <> (bug_id IS NULL)",
            name="ck_time_entry_single_target",
        ),
        CheckConstraint("duration_seconds > 0", name="ck_time_entry_duration_positive"),
        Index("ix_time_entry_todo", "todo_id"),
        Index("ix_time_entry_bug", "bug_id"),
        Index("ix_time_entry_project", "project_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    todo_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("todo.id", ondelete="CASCADE"),
        nullable=True
    )

    bug_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("bug.id", ondelete="CASCADE"),
        nullable=True
    )

    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False
    )

    # Quem registrou o tempo
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
