import uuid
from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from bugflow.db.base import Base

TODO_STATUSES = ("OPEN", "IN_PROGRESS", "READY_FOR_QA", "DONE")


class Todo(Base):
    __tablename__ = "todo"
    __table_args__ = (
        CheckConstraint(
            "status IN ('OPEN','IN_PROGRESS','READY_FOR_QA','DONE')",
            name="ck_todo_status_valid",
        ),
        CheckConstraint(
            "severity IN ('CRITICAL','HIGH','MEDIUM','LOW')",
            name="ck_todo_severity_valid",
        ),
        CheckConstraint(
            "environment IN ('Prod','Stage','Dev')",
            name="ck_todo_environment_valid",
        ),
        Index("ix_todo_project_status", "project_id", "status"),
        Index("ix_todo_user", "user_id"),
        Index("ix_todo_assignee", "assignee_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(length=500), nullable=False)
    issue_link: Mapped[str | None] = mapped_column(String(length=1000), nullable=True)
    status: Mapped[str] = mapped_column(String(length=20), nullable=False, default="OPEN")
    severity: Mapped[str] = mapped_column(String(length=20), nullable=False, default="MEDIUM")
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    environment: Mapped[str] = mapped_column(String(length=10), nullable=False, default="Dev")
    quick_action: Mapped[str | None] = mapped_column(Text, nullable=True)

    assignee_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("app_user.id", ondelete="SET NULL"),
        nullable=True
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False
    )

    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
