"""Application settings loaded from environment variables."""

import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Process-wide settings, read once at startup."""
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, ge=0, le=65535, description="Listen port")
    store_backend: Literal["sqlite", "memory"] = Field(default="sqlite", description="Task store backend")
    db_path: str = Field(default="tasks.sqlite3", description="SQLite database file")
    weekday_titles: bool = Field(default=False, description="Restrict titles to weekday names")
    seed_example: bool = Field(default=True, description="Seed one example task into an empty store")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from the environment; unset variables keep their defaults."""
        env = os.environ if environ is None else environ
        mapping = {
            "host": "HOST",
            "port": "PORT",
            "store_backend": "TASK_STORE",
            "db_path": "TASKS_DB_PATH",
            "weekday_titles": "TASK_TITLE_WEEKDAYS",
            "seed_example": "TASK_SEED_EXAMPLE",
        }
        values = {field: env[var] for field, var in mapping.items() if env.get(var)}
        if "store_backend" in values:
            values["store_backend"] = values["store_backend"].strip().lower()
        return cls.model_validate(values)
