"""Task models.

``TaskFields`` is the single table of per-field constraints. The entity,
the create payload and the update payload all inherit it, so a rule is
written once and enforced everywhere a task is built.

An optional title constraint is passed as validation context::

    Task.model_validate(data, context={"title_choices": WEEKDAYS})
"""

import re
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationInfo, field_validator


WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Extended calendar format only; no basic (YYYYMMDD) or week dates
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class TaskFields(BaseModel):
    """Client-writable task fields and their constraints."""
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(None, description="Task title (non-empty)")
    description: Optional[str] = Field(None, description="Free text description")
    due_date: Optional[date] = Field(None, description="Due date (YYYY-MM-DD)")
    completed: Optional[StrictBool] = Field(None, description="Completion flag")

    @field_validator("title")
    @classmethod
    def _check_title(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        if value is None:
            return value
        if not value.strip():
            raise ValueError("title must not be empty")
        choices = (info.context or {}).get("title_choices")
        if choices and value.strip().lower() not in choices:
            raise ValueError(f"title must be one of: {', '.join(choices)}")
        return value

    @field_validator("due_date", mode="before")
    @classmethod
    def _parse_due_date(cls, value: Any) -> Any:
        if value is None or isinstance(value, date):
            return value
        if not isinstance(value, str):
            raise ValueError("due_date must be an ISO-8601 date string (YYYY-MM-DD)")
        if not ISO_DATE_RE.match(value):
            raise ValueError(f"due_date must use the YYYY-MM-DD format: {value!r}")
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise ValueError(f"due_date is not a valid date: {value!r}") from None


class TaskCreate(TaskFields):
    """Payload accepted by POST /tasks."""
    title: str = Field(..., description="Task title (non-empty)")
    due_date: date = Field(..., description="Due date (YYYY-MM-DD)")
    completed: StrictBool = Field(default=False, description="Completion flag")


class TaskUpdate(TaskFields):
    """Payload accepted by PUT /tasks/{task_id}.

    Every field is optional. Updates are full-replace: a field left out of
    the payload is written back as null.
    """


class Task(TaskFields):
    """Task model.

    ``title`` and ``due_date`` are present on creation but a full-replace
    update may null them, so they stay optional on the stored entity.
    """
    task_id: str = Field(..., min_length=1, description="Task ID (ULID, assigned by the store)")
    completed: Optional[StrictBool] = Field(default=False, description="Completion flag")
    created_at: Optional[str] = Field(None, serialization_alias="createdAt")
    updated_at: Optional[str] = Field(None, serialization_alias="updatedAt")

    def to_json(self) -> dict[str, Any]:
        """JSON body for this task. Timestamps appear only when the store keeps them."""
        data = self.model_dump(mode="json", by_alias=True)
        for key in ("createdAt", "updatedAt"):
            if data.get(key) is None:
                data.pop(key, None)
        return data
