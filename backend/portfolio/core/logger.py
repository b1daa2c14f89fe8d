"""JSON logging on stdout, correlated per request through ``X-Request-ID``."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from flask import Flask, Response, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = (REQUEST_ID_HEADER, "X-Correlation-ID")

# Service log records only carry ids, counters and reason codes; anything
# else passed through ``extra=`` stays out of the payload.
EXTRA_KEYS = ("endpoint", "elapsed_ms", "user_id", "reason", "revoked")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, stamped with the record's own UTC time."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update({k: getattr(record, k) for k in EXTRA_KEYS if hasattr(record, k)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` on every record (``None`` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def ensure_request_id() -> str:
    """Return the id of the current request, adopting a correlation header if sent.

    Outside a request a throwaway id is returned.
    """
    if not has_request_context():
        return str(uuid4())
    if "request_id" not in g:
        incoming = next(
            (request.headers[h] for h in CORRELATION_HEADERS if request.headers.get(h)), None
        )
        g.request_id = incoming or str(uuid4())
    return g.request_id


def configure_logging(level: str | int = "INFO") -> None:
    """Route the root logger to stdout through :class:`JSONFormatter`."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper() if isinstance(level, str) else level)


def init_app(app: Flask) -> None:
    """Seed a request id before each request and echo it on the response."""

    @app.before_request
    def _seed_request_id() -> None:
        # g outlives the request when an app context is already pushed
        g.pop("request_id", None)
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response: Response) -> Response:
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response
