from __future__ import annotations

from enum import StrEnum


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


class ReminderType(StrEnum):
    NOTIFICATION = "notification"
    EMAIL = "email"
