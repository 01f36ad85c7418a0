import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from bugflow.db.base import Base

BUG_SEVERITIES = ("CRITICAL", "HIGH", "MEDIUM", "LOW")
BUG_STATUSES = ("Open", "In Progress", "Ready for QA", "Closed")
ENVIRONMENTS = ("Prod", "Stage", "Dev")


class Bug(Base):
    __tablename__ = "bug"
    __table_args__ = (
        CheckConstraint(
            "severity IN ('CRITICAL','HIGH','MEDIUM','LOW')",
            name="ck_bug_severity_valid",
        ),
        CheckConstraint(
            "status IN ('Open','In Progress','Ready for QA','Closed')",
            name="ck_bug_status_valid",
        ),
        CheckConstraint(
            "environment IN ('Prod','Stage','Dev')",
            name="ck_bug_environment_valid",
        ),
        Index("ix_bug_project", "project_id"),
        Index("ix_bug_user", "user_id"),
        Index("ix_bug_assignee", "assignee_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(length=500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    severity: Mapped[str] = mapped_column(String(length=20), nullable=False, default="MEDIUM")
    status: Mapped[str] = mapped_column(String(length=20), nullable=False, default="Open")
    environment: Mapped[str] = mapped_column(String(length=10), nullable=False, default="Dev")
    reporter: Mapped[str | None] = mapped_column(String(length=255), nullable=True)

    assignee_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("app_user.id", ondelete="SET NULL"),
        nullable=True
    )

    # Criador do bug
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
