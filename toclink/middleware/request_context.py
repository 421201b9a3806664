"""Request identifiers for the TocLink API, carried into every log line."""

from __future__ import annotations

import contextvars
import logging
import re
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

LOGGER = logging.getLogger("toclink.requests")

REQUEST_ID_HEADER = "X-Request-ID"
SAFE_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

_current_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "toclink_request_id", default=None
)


def get_request_id(default: str | None = None) -> str | None:
    """Identifier of the request being served, or ``default`` outside one."""

    return _current_request_id.get() or default


def choose_request_id(inbound: str | None) -> str:
    """Reuse a caller's id when it is short and plain, otherwise mint one."""

    candidate = (inbound or "").strip()
    return candidate if SAFE_ID_RE.match(candidate) else uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id, log its outcome and echo the id back."""

    def __init__(self, app: ASGIApp, header_name: str = REQUEST_ID_HEADER) -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next):
        request_id = choose_request_id(request.headers.get(self.header_name))
        request.state.request_id = request_id
        token = _current_request_id.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            LOGGER.info(
                "%s %s -> %d in %.1f ms",
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
            )
        finally:
            _current_request_id.reset(token)
        response.headers[self.header_name] = request_id
        return response


class RequestIdLogFilter(logging.Filter):
    """Expose the current request identifier to log formatters as ``request_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id("-")
        return True


def install_request_id_filter(logger: logging.Logger | None = None) -> None:
    """Add :class:`RequestIdLogFilter` to every handler of ``logger`` (root by default)."""

    target = logger or logging.getLogger()
    for handler in target.handlers:
        if not any(isinstance(existing, RequestIdLogFilter) for existing in handler.filters):
            handler.addFilter(RequestIdLogFilter())


__all__ = [
    "REQUEST_ID_HEADER",
    "RequestIdLogFilter",
    "RequestIdMiddleware",
    "choose_request_id",
    "get_request_id",
    "install_request_id_filter",
]
