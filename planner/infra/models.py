from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)

from .db import Base, utcnow

ID_LENGTH = 36


class ListModel(Base):
    __tablename__ = "lists"

    id = Column(String(ID_LENGTH), primary_key=True)
    name = Column(String(200), nullable=False)
    color = Column(String(7), nullable=False, default="#6366f1")
    emoji = Column(String(16), nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class TaskModel(Base):
    __tablename__ = "tasks"

    id = Column(String(ID_LENGTH), primary_key=True)
    list_id = Column(
        String(ID_LENGTH), ForeignKey("lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    scheduled_at = Column(DateTime, nullable=True, index=True)
    deadline_at = Column(DateTime, nullable=True, index=True)
    estimate_minutes = Column(Integer, nullable=True)
    actual_minutes = Column(Integer, nullable=True)
    priority = Column(String(10), nullable=False, default="none")
    recurring_rule = Column(String(200), nullable=True)
    completed = Column(Boolean, nullable=False, default=False, index=True)
    completed_at = Column(DateTime, nullable=True)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_tasks_scheduled_at_completed", "scheduled_at", "completed"),
        Index("ix_tasks_list_id_completed", "list_id", "completed"),
    )


class TaskHistoryModel(Base):
    __tablename__ = "task_history"

    # autoincrement sequence keeps insertion order for rows sharing a timestamp
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(ID_LENGTH), nullable=False, unique=True)
    task_id = Column(
        String(ID_LENGTH), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    field_name = Column(String(50), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    changed_at = Column(DateTime, nullable=False, default=utcnow, index=True)


class LabelModel(Base):
    __tablename__ = "labels"

    id = Column(String(ID_LENGTH), primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    color = Column(String(7), nullable=False, default="#8b5cf6")
    icon = Column(String(50), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


task_labels = Table(
    "task_labels",
    Base.metadata,
    Column(
        "task_id", String(ID_LENGTH), ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True
    ),
    Column(
        "label_id",
        String(ID_LENGTH),
        ForeignKey("labels.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)


class SubtaskModel(Base):
    __tablename__ = "subtasks"

    id = Column(String(ID_LENGTH), primary_key=True)
    task_id = Column(
        String(ID_LENGTH), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class ReminderModel(Base):
    __tablename__ = "reminders"

    id = Column(String(ID_LENGTH), primary_key=True)
    task_id = Column(
        String(ID_LENGTH), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    remind_at = Column(DateTime, nullable=False)
    type = Column(String(20), nullable=False, default="notification")
    sent = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("ix_reminders_remind_at_sent", "remind_at", "sent"),)


class AttachmentModel(Base):
    __tablename__ = "attachments"

    id = Column(String(ID_LENGTH), primary_key=True)
    task_id = Column(
        String(ID_LENGTH), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    filename = Column(String(255), nullable=False)
    file_path = Column(Text, nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(100), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
