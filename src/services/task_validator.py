"""Request payload validation for task endpoints."""

import logging
from typing import Any, Optional, Sequence, TypeVar

from pydantic import ValidationError as PydanticValidationError

from src.models.task import TaskCreate, TaskFields, TaskUpdate
from src.utils.errors import FieldError, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=TaskFields)


def _field_error(error: dict) -> FieldError:
    """Translate one pydantic error entry into a FieldError."""
    loc = error.get("loc") or ()
    field = str(loc[0]) if loc else "body"

    if error.get("type") == "missing":
        return FieldError(field=field, message=f"{field} is required")
    if error.get("type") == "value_error" and error.get("ctx", {}).get("error"):
        # Our own validators raise ValueError with a ready-made message
        return FieldError(field=field, message=str(error["ctx"]["error"]))
    return FieldError(field=field, message=f"{field}: {error.get('msg', 'invalid value')}")


def _validate(
    model: type[ModelT],
    payload: Any,
    title_choices: Optional[Sequence[str]],
) -> ModelT:
    if not isinstance(payload, dict):
        raise ValidationError([
            FieldError(field="body", message="Request body must be a JSON object")
        ])

    try:
        return model.model_validate(payload, context={"title_choices": title_choices})
    except PydanticValidationError as e:
        errors = [_field_error(err) for err in e.errors()]
        logger.info(
            "Task payload rejected",
            extra={"model": model.__name__, "fields": [err.field for err in errors]}
        )
        raise ValidationError(errors) from e


def validate_create(payload: Any, title_choices: Optional[Sequence[str]] = None) -> TaskCreate:
    """
    Validate a POST /tasks body.

    title and due_date are required; description and completed are optional.
    Raises ValidationError with one entry per failed field.
    """
    return _validate(TaskCreate, payload, title_choices)


def validate_update(payload: Any, title_choices: Optional[Sequence[str]] = None) -> TaskUpdate:
    """
    Validate a PUT /tasks/{task_id} body.

    The same constraints as create, applied only to fields that are present.
    """
    return _validate(TaskUpdate, payload, title_choices)
