"""Test helper functions."""

import json
from typing import Any, Dict, Optional


def create_request(
    method: str = "GET",
    path: str = "/tasks",
    body: Any = None,
    query: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """Create a router request object for testing."""
    if headers is None:
        headers = {"content-type": "application/json"}

    if body is None:
        raw_body = ""
    elif isinstance(body, str):
        raw_body = body
    else:
        raw_body = json.dumps(body)

    return {
        "method": method,
        "path": path,
        "headers": headers,
        "body": raw_body,
        "query": query or {},
    }


def response_json(response: Dict[str, Any]) -> Any:
    """Decode a router response body."""
    return json.loads(response["body"])
