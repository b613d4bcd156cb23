"""Shared pytest fixtures and configuration."""

import os
import pytest
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FORMAT", "text")

from api.tasks import TaskRouter
from src.models.task import WEEKDAYS
from src.services.sqlite_store import SqliteTaskStore
from src.services.task_store import InMemoryTaskStore


@pytest.fixture
def memory_store():
    """Empty in-memory task store."""
    return InMemoryTaskStore()


@pytest.fixture
def sqlite_store(tmp_path):
    """Empty SQLite task store in a temporary file."""
    store = SqliteTaskStore(tmp_path / "tasks.sqlite3")
    yield store
    store.close()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    """Each store backend in turn, for contract tests."""
    if request.param == "memory":
        yield InMemoryTaskStore()
        return
    sqlite = SqliteTaskStore(tmp_path / "contract.sqlite3")
    yield sqlite
    sqlite.close()


@pytest.fixture
def weekday_store():
    """In-memory store restricted to weekday titles."""
    return InMemoryTaskStore(title_choices=WEEKDAYS)


@pytest.fixture
def router(store):
    """Router bound to each store backend in turn."""
    return TaskRouter(store)


@pytest.fixture
def sample_task_payload():
    """Payload from the shopping scenario."""
    return {
        "title": "shop",
        "description": "Buy milk",
        "due_date": "2024-03-15",
    }


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time
