"""Tests for the task REST endpoints."""

import logging
import pytest
from unittest.mock import Mock

from api.tasks import LIVENESS_TEXT, TaskRouter
from src.services.task_store import InMemoryTaskStore
from src.utils.errors import StorageError
from tests.utils.assertions import assert_valid_response, assert_valid_task
from tests.utils.factories import create_task_payload
from tests.utils.helpers import create_request, response_json


def create_task(router, payload):
    response = router(create_request("POST", "/tasks", body=payload))
    assert_valid_response(response, 201)
    return response_json(response)


@pytest.mark.unit
def test_root_liveness(router):
    """Test GET / returns the liveness text."""
    response = router(create_request("GET", "/"))

    assert_valid_response(response, 200)
    assert response["body"] == LIVENESS_TEXT
    assert response["headers"]["Content-Type"].startswith("text/plain")


@pytest.mark.unit
def test_full_task_lifecycle(router):
    """Test create, get, full-replace update, delete, get."""
    created = create_task(router, {"title": "shop", "due_date": "2024-03-15"})
    assert_valid_task(created)
    assert created["completed"] is False
    assert created["description"] is None
    task_id = created["task_id"]

    response = router(create_request("GET", f"/tasks/{task_id}"))
    assert_valid_response(response, 200)
    assert response_json(response) == created

    response = router(create_request("PUT", f"/tasks/{task_id}", body={"completed": True}))
    assert_valid_response(response, 200)
    updated = response_json(response)
    assert updated["task_id"] == task_id
    assert updated["completed"] is True
    assert updated["title"] is None
    assert updated["description"] is None
    assert updated["due_date"] is None

    response = router(create_request("DELETE", f"/tasks/{task_id}"))
    assert response["statusCode"] == 204
    assert response["body"] == ""

    response = router(create_request("GET", f"/tasks/{task_id}"))
    assert_valid_response(response, 404)
    assert response_json(response) == {"message": "Task not found"}


@pytest.mark.unit
def test_list_tasks(router):
    """Test GET /tasks returns every task in creation order."""
    first = create_task(router, create_task_payload(title="first"))
    second = create_task(router, create_task_payload(title="second"))

    response = router(create_request("GET", "/tasks"))

    assert_valid_response(response, 200)
    assert response_json(response) == [first, second]


@pytest.mark.unit
def test_list_tasks_empty(router):
    """Test GET /tasks on an empty store."""
    response = router(create_request("GET", "/tasks/"))

    assert_valid_response(response, 200)
    assert response_json(response) == []


@pytest.mark.unit
def test_create_missing_field_leaves_store_unchanged(router):
    """Test POST without title or due_date returns 400 and inserts nothing."""
    for body in [{"due_date": "2024-03-15"}, {"title": "shop"}]:
        response = router(create_request("POST", "/tasks", body=body))
        assert_valid_response(response, 400)
        assert "message" in response_json(response)

    response = router(create_request("GET", "/tasks"))
    assert response_json(response) == []


@pytest.mark.unit
def test_create_multiple_errors(router):
    """Test several failing fields are listed individually."""
    response = router(create_request("POST", "/tasks", body={"due_date": "not-a-date"}))

    assert_valid_response(response, 400)
    body = response_json(response)
    assert {e["field"] for e in body["errors"]} == {"title", "due_date"}


@pytest.mark.unit
def test_create_malformed_json(router):
    """Test an unparseable body is a 400."""
    response = router(create_request("POST", "/tasks", body="{not json"))

    assert_valid_response(response, 400)
    assert response_json(response) == {"message": "Malformed JSON body"}


@pytest.mark.unit
def test_search(router):
    """Test GET /task/search filters by title, ignoring case."""
    shop = create_task(router, create_task_payload(title="Shop"))
    create_task(router, create_task_payload(title="friday"))
    workshop = create_task(router, create_task_payload(title="WORKSHOP prep"))

    response = router(create_request("GET", "/task/search", query={"title": ["shop"]}))

    assert_valid_response(response, 200)
    assert response_json(response) == [shop, workshop]


@pytest.mark.unit
def test_search_without_term(router):
    """Test search with a missing or empty title parameter."""
    for query in [{}, {"title": [""]}]:
        response = router(create_request("GET", "/task/search", query=query))
        assert_valid_response(response, 400)
        assert response_json(response) == {"message": "Missing search term (title)"}


@pytest.mark.unit
def test_update_unknown_task(router):
    """Test PUT on an unknown id is 404 and creates nothing."""
    response = router(create_request(
        "PUT", "/tasks/missing", body={"title": "shop", "due_date": "2024-03-15"}
    ))

    assert_valid_response(response, 404)
    assert response_json(router(create_request("GET", "/tasks"))) == []


@pytest.mark.unit
def test_update_invalid_payload(router):
    """Test PUT validates present fields before touching the store."""
    created = create_task(router, create_task_payload(title="keep me"))

    response = router(create_request("PUT", f"/tasks/{created['task_id']}", body={"due_date": "31-12-2024"}))

    assert_valid_response(response, 400)
    stored = response_json(router(create_request("GET", f"/tasks/{created['task_id']}")))
    assert stored["title"] == "keep me"


@pytest.mark.unit
def test_delete_unknown_task(router):
    """Test DELETE of a never-existing id still answers 204."""
    response = router(create_request("DELETE", "/tasks/never-existed"))

    assert response["statusCode"] == 204


@pytest.mark.unit
def test_task_id_is_url_decoded():
    """Test ids in the path are percent-decoded before lookup."""
    store = Mock()
    store.get.return_value = None
    router = TaskRouter(store)

    router(create_request("GET", "/tasks/a%20b"))

    store.get.assert_called_once_with("a b")


@pytest.mark.unit
def test_unknown_route(router):
    """Test unmatched method/path combinations."""
    for method, path in [("GET", "/nope"), ("PATCH", "/tasks/1"), ("POST", "/")]:
        response = router(create_request(method, path))
        assert_valid_response(response, 404)
        assert response_json(response) == {"message": "Route not found"}


@pytest.mark.unit
def test_storage_error_is_500():
    """Test storage failures map to a 500 with detail."""
    store = Mock()
    store.list.side_effect = StorageError("Failed to list tasks: disk I/O error")
    router = TaskRouter(store)

    response = router(create_request("GET", "/tasks"))

    assert_valid_response(response, 500)
    assert response_json(response) == {
        "message": "Server error",
        "error": "Failed to list tasks: disk I/O error",
    }


@pytest.mark.unit
def test_unexpected_error_is_500():
    """Test any other exception is contained to the request."""
    store = Mock()
    store.get.side_effect = RuntimeError("boom")
    router = TaskRouter(store)

    response = router(create_request("GET", "/tasks/t1"))

    assert_valid_response(response, 500)
    assert response_json(response)["error"] == "boom"


@pytest.mark.unit
def test_weekday_router_rejects_other_titles(weekday_store):
    """Test the title constraint is enforced at the HTTP layer."""
    router = TaskRouter(weekday_store)

    response = router(create_request("POST", "/tasks", body={"title": "shop", "due_date": "2024-03-15"}))
    assert_valid_response(response, 400)

    response = router(create_request("POST", "/tasks", body={"title": "Sunday", "due_date": "2024-03-17"}))
    assert_valid_response(response, 201)


@pytest.mark.unit
def test_non_ascii_text_round_trips():
    """Test unicode titles and descriptions survive JSON encoding."""
    router = TaskRouter(InMemoryTaskStore())

    created = create_task(router, {"title": "Купить молоко", "due_date": "2024-03-15"})
    response = router(create_request("GET", "/task/search", query={"title": "МОЛОКО"}))

    assert response_json(response) == [created]


@pytest.mark.unit
def test_create_rejects_week_date(router):
    """Test an ISO week date is a 400 and nothing is stored."""
    response = router(create_request("POST", "/tasks", body={"title": "x", "due_date": "2024-W11-5"}))

    assert_valid_response(response, 400)
    assert "YYYY-MM-DD" in response_json(response)["message"]
    assert response_json(router(create_request("GET", "/tasks"))) == []


@pytest.mark.unit
def test_create_non_utf8_bytes_body(router):
    """Test raw bytes that are not UTF-8 map to the malformed body message."""
    request = create_request("POST", "/tasks")
    request["body"] = b'{"title": "\xff"}'

    response = router(request)

    assert_valid_response(response, 400)
    assert response_json(response) == {"message": "Malformed JSON body"}


@pytest.mark.unit
def test_bad_request_detail_is_logged_not_returned(router, caplog):
    """Test the decoder error is kept in the log record and out of the body."""
    with caplog.at_level(logging.INFO, logger="api.tasks"):
        response = router(create_request("POST", "/tasks", body="{not json"))

    assert response_json(response) == {"message": "Malformed JSON body"}
    records = [r for r in caplog.records if r.getMessage() == "Bad request: Malformed JSON body"]
    assert len(records) == 1
    assert "Expecting property name" in records[0].detail
