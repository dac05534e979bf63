"""add task history table"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0003_add_task_history"
down_revision = "0002_add_related_tables"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "task_history",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("id", sa.String(length=36), nullable=False, unique=True),
        sa.Column(
            "task_id",
            sa.String(length=36),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("field_name", sa.String(length=50), nullable=False),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("changed_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_task_history_task_id", "task_history", ["task_id"], unique=False)
    op.create_index("ix_task_history_changed_at", "task_history", ["changed_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_task_history_changed_at", table_name="task_history")
    op.drop_index("ix_task_history_task_id", table_name="task_history")
    op.drop_table("task_history")
