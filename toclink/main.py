"""TocLink HTTP entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Iterable, Type

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_settings
from .middleware import RequestIdMiddleware, install_request_id_filter
from .routers import health, toc
from .utils.errors import (
    Cancelled,
    FormatError,
    TocImportError,
    UpstreamError,
    ValidationError,
)
from .utils.logging import REQUEST_LOG_FORMAT, configure_logging

settings = get_settings()
logger = logging.getLogger("uvicorn.error")

ERROR_STATUS: Dict[Type[TocImportError], int] = {
    FormatError: 422,
    ValidationError: 400,
    Cancelled: 409,
    UpstreamError: 502,
}


def status_for(exc: TocImportError) -> int:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and the trace directory for the running service."""

    configure_logging(settings.log_level, fmt=REQUEST_LOG_FORMAT)
    install_request_id_filter()
    if settings.trace_enabled:
        Path(settings.trace_dir).mkdir(parents=True, exist_ok=True)
    yield


app = FastAPI(title="TocLink", version=__version__, lifespan=lifespan)
app.add_middleware(RequestIdMiddleware)

ROUTERS: Iterable = (health.router, toc.router)

for router in ROUTERS:
    app.include_router(router)


@app.exception_handler(TocImportError)
async def handle_import_error(request: Request, exc: TocImportError) -> JSONResponse:
    """Map domain failures onto JSON error responses."""

    status_code = status_for(exc)
    logger.warning(
        "%s %s failed with %s: %s", request.method, request.url.path, exc.code, exc.message
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def handle_unexpected_exception(
    request: Request, exc: Exception
) -> JSONResponse:
    """Ensure unexpected exceptions return a JSON payload."""

    logger.exception(
        "Unhandled exception while processing %s %s", request.method, request.url.path
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


__all__ = ["app", "status_for"]
