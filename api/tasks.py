"""Task REST endpoints.

Routes:
    GET    /                      -> liveness text
    GET    /tasks                 -> list
    GET    /tasks/{task_id}       -> get
    GET    /task/search?title=    -> search
    POST   /tasks                 -> create
    PUT    /tasks/{task_id}       -> update (full-replace)
    DELETE /tasks/{task_id}       -> delete

Requests and responses are plain dicts so the router can be driven
without a socket::

    router({"method": "GET", "path": "/tasks", "query": {}, "headers": {}, "body": ""})
    -> {"statusCode": 200, "headers": {...}, "body": "[...]"}
"""

import json
import logging
import re
from typing import Any, Callable, Optional
from urllib.parse import unquote

from src.services.task_store import TaskStore
from src.services.task_validator import validate_create, validate_update
from src.utils.errors import BadRequestError, StorageError, ValidationError

logger = logging.getLogger(__name__)

LIVENESS_TEXT = "Task Management API is running!"


def json_response(status: int, payload: Any) -> dict:
    """Build a JSON response dict."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload, ensure_ascii=False),
    }


def text_response(status: int, text: str) -> dict:
    """Build a plain-text response dict."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "text/plain; charset=utf-8"},
        "body": text,
    }


def empty_response(status: int = 204) -> dict:
    """Build a response with no body."""
    return {"statusCode": status, "headers": {}, "body": ""}


def task_not_found() -> dict:
    return json_response(404, {"message": "Task not found"})


def parse_json_body(raw_body: Any) -> Any:
    """Decode a request body; an empty body is an empty object."""
    if isinstance(raw_body, (dict, list)):
        return raw_body
    if isinstance(raw_body, bytes):
        try:
            raw_body = raw_body.decode('utf-8')
        except UnicodeDecodeError as e:
            raise BadRequestError("Malformed JSON body", detail=str(e)) from e
    if not raw_body or not raw_body.strip():
        return {}
    try:
        return json.loads(raw_body)
    except json.JSONDecodeError as e:
        raise BadRequestError("Malformed JSON body", detail=str(e)) from e


def query_value(query: Optional[dict], name: str) -> Optional[str]:
    """First value of a query parameter; accepts parse_qs lists or plain strings."""
    value = (query or {}).get(name)
    if isinstance(value, list):
        return value[0] if value else None
    return value


class TaskRouter:
    """Maps task endpoints onto an injected TaskStore."""

    def __init__(self, store: TaskStore):
        self.store = store
        self.routes: list[tuple[str, re.Pattern, Callable[..., dict]]] = [
            ("GET", re.compile(r"^/$"), self.root),
            ("GET", re.compile(r"^/tasks/?$"), self.list_tasks),
            ("GET", re.compile(r"^/task/search/?$"), self.search_tasks),
            ("GET", re.compile(r"^/tasks/(?P<task_id>[^/]+)/?$"), self.get_task),
            ("POST", re.compile(r"^/tasks/?$"), self.create_task),
            ("PUT", re.compile(r"^/tasks/(?P<task_id>[^/]+)/?$"), self.update_task),
            ("DELETE", re.compile(r"^/tasks/(?P<task_id>[^/]+)/?$"), self.delete_task),
        ]

    def __call__(self, request: dict) -> dict:
        method = (request.get("method") or "GET").upper()
        path = request.get("path") or "/"

        for route_method, pattern, view in self.routes:
            match = pattern.match(path)
            if route_method != method or match is None:
                continue
            params = {k: unquote(v) for k, v in match.groupdict().items()}
            return self._dispatch(view, request, **params)

        return json_response(404, {"message": "Route not found"})

    def _dispatch(self, view: Callable[..., dict], request: dict, **params: str) -> dict:
        try:
            return view(request, **params)
        except ValidationError as e:
            return json_response(400, e.to_body())
        except BadRequestError as e:
            logger.info(f"Bad request: {e.message}", extra={"detail": e.detail})
            return json_response(400, {"message": e.message})
        except StorageError as e:
            logger.error(f"Storage error: {e}")
            return json_response(500, {"message": "Server error", "error": str(e)})
        except Exception as e:
            logger.exception(f"Unhandled error in {view.__name__}: {e}")
            return json_response(500, {"message": "Server error", "error": str(e)})

    def root(self, request: dict) -> dict:
        return text_response(200, LIVENESS_TEXT)

    def list_tasks(self, request: dict) -> dict:
        return json_response(200, [task.to_json() for task in self.store.list()])

    def get_task(self, request: dict, task_id: str) -> dict:
        task = self.store.get(task_id)
        if task is None:
            return task_not_found()
        return json_response(200, task.to_json())

    def search_tasks(self, request: dict) -> dict:
        term = query_value(request.get("query"), "title")
        return json_response(200, [task.to_json() for task in self.store.search(term)])

    def create_task(self, request: dict) -> dict:
        payload = validate_create(parse_json_body(request.get("body")), self.store.title_choices)
        task = self.store.create(payload)
        return json_response(201, task.to_json())

    def update_task(self, request: dict, task_id: str) -> dict:
        payload = validate_update(parse_json_body(request.get("body")), self.store.title_choices)
        task = self.store.update(task_id, payload)
        if task is None:
            return task_not_found()
        return json_response(200, task.to_json())

    def delete_task(self, request: dict, task_id: str) -> dict:
        # 204 whether or not the task existed
        self.store.delete(task_id)
        return empty_response(204)
