"""Access log middleware for the task router."""

from functools import wraps
from typing import Callable

from src.utils.logging import correlation_context, get_structured_logger, log_timing
from src.utils.logging_config import LoggingConfig

logger = get_structured_logger(__name__)


def _header(headers: dict, name: str) -> str:
    """Case-insensitive header lookup."""
    for key, value in (headers or {}).items():
        if key.lower() == name.lower():
            return value
    return ""


def access_log(app: Callable[[dict], dict]) -> Callable[[dict], dict]:
    """
    Wrap a request callable with per-request access logging.

    Each request runs inside a correlation context (taken from the
    correlation header when the client sends one) and produces one log
    record with method, path, status and processing time. The correlation
    id is echoed back as a response header.
    """
    header_name = LoggingConfig.LOG_CORRELATION_ID_HEADER

    @wraps(app)
    def wrapper(request: dict) -> dict:
        incoming_id = _header(request.get("headers"), header_name) or None
        with correlation_context(incoming_id) as correlation_id:
            with log_timing(
                "http_request",
                logger=logger,
                method=request.get("method"),
                path=request.get("path"),
            ) as fields:
                response = app(request)
                fields["status"] = response.get("statusCode")
        response.setdefault("headers", {})[header_name] = correlation_id
        return response

    return wrapper
