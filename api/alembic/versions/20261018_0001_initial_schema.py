"""Initial schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "20261018_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "app_user",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_app_user_email", "app_user", ["email"], unique=True)

    op.create_table(
        "access_token",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("app_user.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _timestamp("created_at"),
    )
    op.create_index("ix_access_token_hash", "access_token", ["token_hash"], unique=True)
    op.create_index("ix_access_token_user", "access_token", ["user_id"])

    op.create_table(
        "project",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "owner_user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("app_user.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_project_owner", "project", ["owner_user_id"])

    op.create_table(
        "team",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "project_id",
            sa.Integer(),
            sa.ForeignKey("project.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_team_project_name", "team", ["project_id", "name"], unique=True)

    op.create_table(
        "team_member",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "team_id",
            sa.Integer(),
            sa.ForeignKey("team.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "profile_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("app_user.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="developer"),
        _timestamp("joined_at"),
        sa.CheckConstraint(
            "role IN ('developer','tester','guest')",
            name="ck_team_member_role_valid",
        ),
    )
    op.create_index(
        "ix_team_member_team_profile",
        "team_member",
        ["team_id", "profile_id"],
        unique=True,
    )
    op.create_index("ix_team_member_profile", "team_member", ["profile_id"])

    op.create_table(
        "team_invitation",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="developer"),
        sa.Column(
            "project_id",
            sa.Integer(),
            sa.ForeignKey("project.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "team_id",
            sa.Integer(),
            sa.ForeignKey("team.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "invited_by_user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("app_user.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "role IN ('developer','tester','guest')",
            name="ck_team_invitation_role_valid",
        ),
        sa.CheckConstraint(
            "status IN ('pending','accepted','declined','expired','cancelled')",
            name="ck_team_invitation_status_valid",
        ),
    )
    op.create_index(
        "uq_team_invitation_pending_email_project",
        "team_invitation",
        ["email", "project_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )
    op.create_index("ix_team_invitation_token", "team_invitation", ["token"], unique=True)
    op.create_index("ix_team_invitation_email_status", "team_invitation", ["email", "status"])

    op.create_table(
        "bug",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("severity", sa.String(length=20), nullable=False, server_default="MEDIUM"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Open"),
        sa.Column("environment", sa.String(length=10), nullable=False, server_default="Dev"),
        sa.Column("reporter", sa.String(length=255), nullable=True),
        sa.Column(
            "assignee_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("app_user.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("app_user.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "project_id",
            sa.Integer(),
            sa.ForeignKey("project.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "severity IN ('CRITICAL','HIGH','MEDIUM','LOW')",
            name="ck_bug_severity_valid",
        ),
        sa.CheckConstraint(
            "status IN ('Open','In Progress','Ready for QA','Closed')",
            name="ck_bug_status_valid",
        ),
        sa.CheckConstraint(
            "environment IN ('Prod','Stage','Dev')",
            name="ck_bug_environment_valid",
        ),
    )
    op.create_index("ix_bug_project", "bug", ["project_id"])
    op.create_index("ix_bug_user", "bug", ["user_id"])
    op.create_index("ix_bug_assignee", "bug", ["assignee_id"])

    op.create_table(
        "todo",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("issue_link", sa.String(length=1000), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="OPEN"),
        sa.Column("severity", sa.String(length=20), nullable=False, server_default="MEDIUM"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("environment", sa.String(length=10), nullable=False, server_default="Dev"),
        sa.Column("quick_action", sa.Text(), nullable=True),
        sa.Column(
            "assignee_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("app_user.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("app_user.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "project_id",
            sa.Integer(),
            sa.ForeignKey("project.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "status IN ('OPEN','IN_PROGRESS','READY_FOR_QA','DONE')",
            name="ck_todo_status_valid",
        ),
        sa.CheckConstraint(
            "severity IN ('CRITICAL','HIGH','MEDIUM','LOW')",
            name="ck_todo_severity_valid",
        ),
        sa.CheckConstraint(
            "environment IN ('Prod','Stage','Dev')",
            name="ck_todo_environment_valid",
        ),
    )
    op.create_index("ix_todo_project_status", "todo", ["project_id", "status"])
    op.create_index("ix_todo_user", "todo", ["user_id"])
    op.create_index("ix_todo_assignee", "todo", ["assignee_id"])


def downgrade() -> None:
    op.drop_table("todo")
    op.drop_table("bug")
    op.drop_index("uq_team_invitation_pending_email_project", table_name="team_invitation")
    op.drop_table("team_invitation")
    op.drop_table("team_member")
    op.drop_table("team")
    op.drop_table("project")
    op.drop_table("access_token")
    op.drop_table("app_user")
