import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from bugflow.db.base import Base

INVITATION_STATUSES = ("pending", "accepted", "declined", "expired", "cancelled")


class Invitation(Base):
    """
    Convite para entrar em um time do projeto, endereçado por e-mail.

    Criado pelo owner do projeto; aceito ou recusado pelo dono do e-mail.
    A expiração é derivada de ``expires_at`` na leitura; o status ``expired``
    só é gravado quando um novo convite substitui um pendente vencido.
    """
    __tablename__ = "team_invitation"
    __table_args__ = (
        CheckConstraint(
            "role IN ('developer','tester','guest')",
            name="ck_team_invitation_role_valid",
        ),
        CheckConstraint(
            "status IN ('pending','accepted','declined','expired','cancelled')",
            name="ck_team_invitation_status_valid",
        ),
        # No máximo um convite pendente por (email, projeto)
        Index(
            "uq_team_invitation_pending_email_project",
            "email",
            "project_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("ix_team_invitation_token", "token", unique=True),
        Index("ix_team_invitation_email_status", "email", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(String(length=320), nullable=False)
    name: Mapped[str | None] = mapped_column(String(length=255), nullable=True)

    role: Mapped[str] = mapped_column(
        String(length=20),
        nullable=False,
        default="developer"
    )

    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False
    )

    team_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("team.id", ondelete="SET NULL"),
        nullable=True
    )

    invited_by_user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("app_user.id", ondelete="CASCADE"),
        nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(length=20),
        nullable=False,
        default="pending"
    )

    token: Mapped[str] = mapped_column(String(length=64), nullable=False)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

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
