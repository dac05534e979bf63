"""add labels, subtasks, reminders and attachments"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0002_add_related_tables"
down_revision = "0001_create_lists_tasks"
branch_labels = None
depends_on = None


def _task_fk() -> sa.Column:
    return sa.Column(
        "task_id",
        sa.String(length=36),
        sa.ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "labels",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("color", sa.String(length=7), nullable=False, server_default="#8b5cf6"),
        sa.Column("icon", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "task_labels",
        sa.Column(
            "task_id",
            sa.String(length=36),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "label_id",
            sa.String(length=36),
            sa.ForeignKey("labels.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("ix_task_labels_label_id", "task_labels", ["label_id"], unique=False)

    op.create_table(
        "subtasks",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _task_fk(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_subtasks_task_id", "subtasks", ["task_id"], unique=False)

    op.create_table(
        "reminders",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _task_fk(),
        sa.Column("remind_at", sa.DateTime(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="notification"),
        sa.Column("sent", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_reminders_task_id", "reminders", ["task_id"], unique=False)
    op.create_index("ix_reminders_remind_at_sent", "reminders", ["remind_at", "sent"], unique=False)

    op.create_table(
        "attachments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _task_fk(),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("file_path", sa.Text(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_attachments_task_id", "attachments", ["task_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_attachments_task_id", table_name="attachments")
    op.drop_table("attachments")
    op.drop_index("ix_reminders_remind_at_sent", table_name="reminders")
    op.drop_index("ix_reminders_task_id", table_name="reminders")
    op.drop_table("reminders")
    op.drop_index("ix_subtasks_task_id", table_name="subtasks")
    op.drop_table("subtasks")
    op.drop_index("ix_task_labels_label_id", table_name="task_labels")
    op.drop_table("task_labels")
    op.drop_table("labels")
