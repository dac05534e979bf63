"""add soft delete timestamp"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0004_add_soft_delete"
down_revision = "0003_add_task_history"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("tasks", sa.Column("deleted_at", sa.DateTime(), nullable=True))


def downgrade() -> None:
    op.drop_column("tasks", "deleted_at")
