"""Time entries for todos and bugs

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18 15:00:00.000000
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "20261018_0002"
down_revision: str | None = "20261018_0001"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "time_entry",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("todo_id", sa.Integer(), sa.ForeignKey("todo.id", ondelete="CASCADE"), nullable=True),
        sa.Column("bug_id", sa.Integer(), sa.ForeignKey("bug.id", ondelete="CASCADE"), nullable=True),
        sa.Column(
            "project_id",
            sa.Integer(),
            sa.ForeignKey("project.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("app_user.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint(
            "(todo_id IS NULL) <> (bug_id IS NULL)",
            name="ck_time_entry_single_target",
        ),
        sa.CheckConstraint("duration_seconds > 0", name="ck_time_entry_duration_positive"),
    )
    op.create_index("ix_time_entry_todo", "time_entry", ["todo_id"])
    op.create_index("ix_time_entry_bug", "time_entry", ["bug_id"])
    op.create_index("ix_time_entry_project", "time_entry", ["project_id"])


def downgrade() -> None:
    op.drop_index("ix_time_entry_project", table_name="time_entry")
    op.drop_index("ix_time_entry_bug", table_name="time_entry")
    op.drop_index("ix_time_entry_todo", table_name="time_entry")
    op.drop_table("time_entry")
