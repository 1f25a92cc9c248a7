"""
TASKTRACK - Request-scoped logging

Each request gets its own logger carrying a request id. Middleware stores it
on ``request.state.log``; routes hand it to services through the
``get_request_logger`` dependency.
"""

import logging
import uuid
from typing import Any, MutableMapping

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

logger = logging.getLogger("tasktrack.request")


class RequestLogger(logging.LoggerAdapter):
    """Logger adapter that prefixes every record with the request id."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return f"[{extra.get('request_id', '-')}] {msg}", kwargs


def bind_logger(base: logging.Logger, request_id: str) -> RequestLogger:
    return RequestLogger(base, {"request_id": request_id})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach a request id and request-scoped logger to every request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        request.state.log = bind_logger(logger, request_id)
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def get_request_logger(request: Request) -> logging.LoggerAdapter:
    """Dependency returning the logger bound to the current request."""
    log = getattr(request.state, "log", None)
    if log is None:
        log = bind_logger(logger, "-")
        request.state.log = log
    return log
