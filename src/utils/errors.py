"""Error handling utilities."""

from typing import Optional

from pydantic import BaseModel


class FieldError(BaseModel):
    """A single failed field check."""
    field: str
    message: str


class TaskTrackerError(Exception):
    """Base exception for the task tracker API."""
    pass


class ValidationError(TaskTrackerError):
    """One or more task fields are missing or malformed."""

    def __init__(self, errors: list[FieldError]):
        self.errors = errors
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))

    def to_body(self) -> dict:
        """Render as a 400 response body."""
        if len(self.errors) == 1:
            return {"message": self.errors[0].message}
        return {
            "message": "Validation failed",
            "errors": [e.model_dump() for e in self.errors],
        }


class BadRequestError(TaskTrackerError):
    """Request is unusable for a reason other than field validation."""

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class StorageError(TaskTrackerError):
    """Task storage operation error."""
    pass
