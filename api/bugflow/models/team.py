import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from bugflow.db.base import Base

MEMBER_ROLES = ("developer", "tester", "guest")


class Team(Base):
    __tablename__ = "team"
    __table_args__ = (
        Index("ix_team_project_name", "project_id", "name", unique=True),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False
    )

    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class TeamMember(Base):
    """
    Vínculo (time, usuário, papel).

    Um usuário pode estar em vários times de vários projetos, mas no máximo
    uma vez em cada time.
    """
    __tablename__ = "team_member"
    __table_args__ = (
        CheckConstraint(
            "role IN ('developer','tester','guest')",
            name="ck_team_member_role_valid",
        ),
        Index("ix_team_member_team_profile", "team_id", "profile_id", unique=True),
        Index("ix_team_member_profile", "profile_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    team_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("team.id", ondelete="CASCADE"),
        nullable=False
    )

    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False
    )

    role: Mapped[str] = mapped_column(
        String(length=20),
        nullable=False,
        default="developer"
    )

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
