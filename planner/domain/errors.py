from __future__ import annotations


class PlannerError(Exception):
    """Base class for errors raised by the task store."""


class ValidationError(PlannerError):
    """Input rejected before it reached storage."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class StorageUnavailableError(PlannerError):
    """The database failed mid-operation; the transaction was rolled back."""

    retryable = True


class InvariantViolation(PlannerError):
    pass
