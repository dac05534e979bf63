"""create lists and tasks tables"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_create_lists_tasks"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "lists",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("color", sa.String(length=7), nullable=False, server_default="#6366f1"),
        sa.Column("emoji", sa.String(length=16), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "tasks",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "list_id",
            sa.String(length=36),
            sa.ForeignKey("lists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("scheduled_at", sa.DateTime(), nullable=True),
        sa.Column("deadline_at", sa.DateTime(), nullable=True),
        sa.Column("estimate_minutes", sa.Integer(), nullable=True),
        sa.Column("actual_minutes", sa.Integer(), nullable=True),
        sa.Column("priority", sa.String(length=10), nullable=False, server_default="none"),
        sa.Column("recurring_rule", sa.String(length=200), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_tasks_list_id", "tasks", ["list_id"], unique=False)
    op.create_index("ix_tasks_scheduled_at", "tasks", ["scheduled_at"], unique=False)
    op.create_index("ix_tasks_deadline_at", "tasks", ["deadline_at"], unique=False)
    op.create_index("ix_tasks_completed", "tasks", ["completed"], unique=False)
    op.create_index(
        "ix_tasks_scheduled_at_completed", "tasks", ["scheduled_at", "completed"], unique=False
    )
    op.create_index("ix_tasks_list_id_completed", "tasks", ["list_id", "completed"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_tasks_list_id_completed", table_name="tasks")
    op.drop_index("ix_tasks_scheduled_at_completed", table_name="tasks")
    op.drop_index("ix_tasks_completed", table_name="tasks")
    op.drop_index("ix_tasks_deadline_at", table_name="tasks")
    op.drop_index("ix_tasks_scheduled_at", table_name="tasks")
    op.drop_index("ix_tasks_list_id", table_name="tasks")
    op.drop_table("tasks")
    op.drop_table("lists")
