"""HTTP entry point for the task API.

Launch:
    python -m api.server
    task-tracker            # console script
"""

import json
import logging
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Callable, Optional
from urllib.parse import parse_qs, urlsplit

from api.middleware import access_log
from api.tasks import TaskRouter, json_response
from src.config import Settings
from src.services.task_store import create_task_store
from src.utils.errors import BadRequestError
from src.utils.logging_config import LoggingConfig

logger = logging.getLogger(__name__)


class handler(BaseHTTPRequestHandler):
    """Adapts http.server requests to the dict-based router."""

    app: Optional[Callable[[dict], dict]] = None

    def _read_body(self) -> bytes:
        raw_length = (self.headers.get('Content-Length') or "0").strip()
        try:
            content_length = int(raw_length)
        except ValueError:
            content_length = -1
        if content_length < 0:
            raise BadRequestError("Invalid Content-Length header", detail=raw_length)
        return self.rfile.read(content_length) if content_length > 0 else b""

    def _build_request(self) -> dict:
        url = urlsplit(self.path)
        # Left undecoded; the router answers 400 for bodies that are not UTF-8 JSON
        raw_body = self._read_body()
        return {
            "method": self.command,
            "path": url.path,
            "query": parse_qs(url.query, keep_blank_values=True),
            "headers": dict(self.headers),
            "body": raw_body,
        }

    def _send(self, response: dict) -> None:
        body = response.get("body") or ""
        if not isinstance(body, str):
            body = json.dumps(body)
        payload = body.encode('utf-8')

        self.send_response(response["statusCode"])
        for key, value in (response.get("headers") or {}).items():
            self.send_header(key, value)
        if response["statusCode"] != 204:
            self.send_header('Content-Length', str(len(payload)))
        self.end_headers()
        if payload and response["statusCode"] != 204:
            self.wfile.write(payload)

    def _handle(self) -> None:
        if self.app is None:
            self._send({
                "statusCode": 500,
                "headers": {"Content-Type": "application/json"},
                "body": json.dumps({"message": "Server error", "error": "application not configured"}),
            })
            return
        try:
            request = self._build_request()
        except BadRequestError as e:
            logger.info(f"Bad request: {e.message}", extra={"detail": e.detail})
            self._send(json_response(400, {"message": e.message}))
            return
        self._send(self.app(request))

    def do_GET(self):
        """Handle GET request."""
        self._handle()

    def do_POST(self):
        """Handle POST request."""
        self._handle()

    def do_PUT(self):
        """Handle PUT request."""
        self._handle()

    def do_DELETE(self):
        """Handle DELETE request."""
        self._handle()

    def log_message(self, format, *args):
        # Requests are logged by the access log middleware
        return


def make_handler(app: Callable[[dict], dict]) -> type:
    """Bind a request callable to a fresh handler class."""
    return type("TaskRequestHandler", (handler,), {"app": staticmethod(app)})


def build_app(settings: Settings):
    """Create the store and the wrapped router. Returns (app, store)."""
    store = create_task_store(settings)
    return access_log(TaskRouter(store)), store


def main() -> None:
    """Run the API server until interrupted."""
    LoggingConfig.setup_logging()
    settings = Settings.from_env()
    app, store = build_app(settings)

    server = HTTPServer((settings.host, settings.port), make_handler(app))
    logger.info(
        "Server listening",
        extra={"host": settings.host, "port": settings.port, "store": settings.store_backend}
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server_close()
        store.close()


if __name__ == "__main__":
    main()
