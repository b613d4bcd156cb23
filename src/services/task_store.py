"""Task store contract, in-memory backend and store factory."""

import logging
from typing import Any, List, Mapping, Optional, Sequence, Union

from ulid import ULID

from src.config import Settings
from src.models.task import WEEKDAYS, Task, TaskCreate, TaskUpdate
from src.services.task_validator import validate_create, validate_update
from src.utils.errors import BadRequestError, ValidationError

logger = logging.getLogger(__name__)

EXAMPLE_TASK = {
    "title": "friday",
    "description": "Visit the lecture",
    "due_date": "2024-03-16",
    "completed": False,
}

# The in-memory backend starts with two demo tasks
MEMORY_EXAMPLE_TASKS = (
    {
        "title": "shop",
        "description": "Buy milk",
        "due_date": "2024-03-15",
        "completed": True,
    },
    EXAMPLE_TASK,
)


def generate_task_id() -> str:
    """Generate a text-based task ID (ULID format)."""
    return str(ULID())


def matches_title(task: Task, term: str) -> bool:
    """Case-insensitive substring match against the task title."""
    return task.title is not None and term.lower() in task.title.lower()


class TaskStore:
    """
    Owner of the authoritative task collection.

    Subclasses implement the storage primitives; validation and search
    semantics live here so every backend behaves the same.
    """

    def __init__(self, title_choices: Optional[Sequence[str]] = None):
        self.title_choices = tuple(title_choices) if title_choices else None

    def close(self) -> None:
        """Release storage resources."""
        return

    def _coerce_create(self, fields: Union[TaskCreate, Mapping[str, Any]]) -> TaskCreate:
        if isinstance(fields, TaskCreate):
            return fields
        return validate_create(dict(fields), self.title_choices)

    def _coerce_update(self, fields: Union[TaskUpdate, Mapping[str, Any]]) -> TaskUpdate:
        if isinstance(fields, TaskUpdate):
            return fields
        return validate_update(dict(fields), self.title_choices)

    def list(self) -> List[Task]:
        """All tasks in insertion order."""
        raise NotImplementedError

    def get(self, task_id: str) -> Optional[Task]:
        """Task with exactly this id, or None."""
        raise NotImplementedError

    def search(self, title: Optional[str]) -> List[Task]:
        """Tasks whose title contains ``title``, ignoring case."""
        if not title:
            raise BadRequestError("Missing search term (title)")
        return [task for task in self.list() if matches_title(task, title)]

    def create(self, fields: Union[TaskCreate, Mapping[str, Any]]) -> Task:
        """Validate, assign a fresh task_id and append."""
        raise NotImplementedError

    def update(self, task_id: str, fields: Union[TaskUpdate, Mapping[str, Any]]) -> Optional[Task]:
        """Full-replace the mutable fields of an existing task; None if unknown."""
        raise NotImplementedError

    def delete(self, task_id: str) -> bool:
        """Remove a task; True if one was removed."""
        raise NotImplementedError


class InMemoryTaskStore(TaskStore):
    """Task store backed by a plain list. State lives for the process lifetime."""

    def __init__(self, title_choices: Optional[Sequence[str]] = None):
        super().__init__(title_choices)
        self._tasks: List[Task] = []
        logger.info("InMemoryTaskStore ready", extra={"title_choices": self.title_choices})

    def _index_of(self, task_id: str) -> int:
        for i, task in enumerate(self._tasks):
            if task.task_id == task_id:
                return i
        return -1

    def list(self) -> List[Task]:
        return [task.model_copy() for task in self._tasks]

    def get(self, task_id: str) -> Optional[Task]:
        i = self._index_of(task_id)
        return self._tasks[i].model_copy() if i != -1 else None

    def create(self, fields: Union[TaskCreate, Mapping[str, Any]]) -> Task:
        data = self._coerce_create(fields)
        task = Task(task_id=generate_task_id(), **data.model_dump())
        self._tasks.append(task)
        logger.info("Task created", extra={"task_id": task.task_id})
        return task.model_copy()

    def update(self, task_id: str, fields: Union[TaskUpdate, Mapping[str, Any]]) -> Optional[Task]:
        data = self._coerce_update(fields)
        i = self._index_of(task_id)
        if i == -1:
            return None
        self._tasks[i] = self._tasks[i].model_copy(update=data.model_dump())
        logger.info("Task updated", extra={"task_id": task_id})
        return self._tasks[i].model_copy()

    def delete(self, task_id: str) -> bool:
        before = len(self._tasks)
        self._tasks = [task for task in self._tasks if task.task_id != task_id]
        removed = len(self._tasks) != before
        if removed:
            logger.info("Task deleted", extra={"task_id": task_id})
        return removed


def seed_example_tasks(store: TaskStore, examples: Sequence[Mapping[str, Any]] = (EXAMPLE_TASK,)) -> List[Task]:
    """
    Insert example tasks when the store is empty.

    Examples rejected by the store's title rule are skipped.
    """
    if store.list():
        return []

    seeded = []
    for example in examples:
        try:
            task = store.create(example)
        except ValidationError as e:
            logger.warning("Skipped example task", extra={"title": example.get("title"), "reason": str(e)})
            continue
        seeded.append(task)
        logger.info("Seeded example task", extra={"task_id": task.task_id})
    return seeded


def create_task_store(settings: Settings) -> TaskStore:
    """Build the backend selected by settings."""
    title_choices = WEEKDAYS if settings.weekday_titles else None

    if settings.store_backend == "memory":
        store: TaskStore = InMemoryTaskStore(title_choices=title_choices)
        examples: Sequence[Mapping[str, Any]] = MEMORY_EXAMPLE_TASKS
    else:
        # Imported here so the memory backend never touches sqlite3
        from src.services.sqlite_store import SqliteTaskStore
        store = SqliteTaskStore(settings.db_path, title_choices=title_choices)
        examples = (EXAMPLE_TASK,)

    if settings.seed_example:
        seed_example_tasks(store, examples)
    return store
