"""Write-side input shapes for tasks.

``TaskPatch`` fields default to :data:`UNSET` so a caller can tell "leave this
column alone" apart from "set this column to ``None``".
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Iterator, Optional

from .enums import Priority
from .errors import ValidationError
from .values import to_naive_utc

NAME_MAX_LENGTH = 200
DATETIME_FIELDS = ("scheduled_at", "deadline_at")


class _Unset:
    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def _check_name(name: Any) -> None:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name", "must be a non-empty string")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError("name", f"must be at most {NAME_MAX_LENGTH} characters")


def _check_minutes(field_name: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field_name, "must be an integer number of minutes")
    if value < 0:
        raise ValidationError(field_name, "must not be negative")


def check_priority(value: Any) -> Priority:
    try:
        return Priority(value)
    except ValueError as exc:
        allowed = ", ".join(p.value for p in Priority)
        raise ValidationError("priority", f"must be one of: {allowed}") from exc


def _check_list_id(value: Any) -> None:
    if not isinstance(value, str) or not value:
        raise ValidationError("list_id", "must reference a list")


def check_datetime(field_name: str, value: Any) -> None:
    if value is not None and not isinstance(value, datetime):
        raise ValidationError(field_name, "must be a datetime")


def normalize_datetimes(obj: Any, names: tuple[str, ...]) -> None:
    # aware values are stored as naive UTC so equal instants compare equal
    for name in names:
        object.__setattr__(obj, name, to_naive_utc(getattr(obj, name)))


@dataclass(frozen=True)
class TaskCreate:
    list_id: str
    name: str
    description: str | None = None
    scheduled_at: Optional[datetime] = None
    deadline_at: Optional[datetime] = None
    estimate_minutes: int | None = None
    actual_minutes: int | None = None
    priority: Priority = Priority.NONE
    recurring_rule: str | None = None

    def __post_init__(self) -> None:
        normalize_datetimes(self, DATETIME_FIELDS)

    def validate(self) -> None:
        _check_list_id(self.list_id)
        _check_name(self.name)
        for name in DATETIME_FIELDS:
            check_datetime(name, getattr(self, name))
        _check_minutes("estimate_minutes", self.estimate_minutes)
        _check_minutes("actual_minutes", self.actual_minutes)
        check_priority(self.priority)

    def columns(self) -> dict[str, Any]:
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values["priority"] = Priority(self.priority).value
        return values


@dataclass(frozen=True)
class TaskPatch:
    list_id: Any = UNSET
    name: Any = UNSET
    description: Any = UNSET
    scheduled_at: Any = UNSET
    deadline_at: Any = UNSET
    estimate_minutes: Any = UNSET
    actual_minutes: Any = UNSET
    priority: Any = UNSET
    recurring_rule: Any = UNSET
    completed: Any = UNSET

    def __post_init__(self) -> None:
        normalize_datetimes(self, DATETIME_FIELDS)

    def supplied(self) -> Iterator[tuple[str, Any]]:
        """Yield ``(field, value)`` for every field the caller set, in declaration order."""
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not UNSET:
                yield f.name, value

    def is_empty(self) -> bool:
        return next(self.supplied(), None) is None

    def validate(self) -> None:
        if self.list_id is not UNSET:
            _check_list_id(self.list_id)
        if self.name is not UNSET:
            _check_name(self.name)
        if self.priority is not UNSET:
            if self.priority is None:
                raise ValidationError("priority", "must not be null")
            check_priority(self.priority)
        if self.completed is not UNSET and not isinstance(self.completed, bool):
            raise ValidationError("completed", "must be a boolean")
        for name in ("estimate_minutes", "actual_minutes"):
            value = getattr(self, name)
            if value is not UNSET:
                _check_minutes(name, value)
        for name in DATETIME_FIELDS:
            value = getattr(self, name)
            if value is not UNSET:
                check_datetime(name, value)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaskPatch":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(unknown[0], "is not an updatable task field")
        return cls(**data)
