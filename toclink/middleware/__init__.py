"""ASGI middleware utilities for the TocLink service."""

from .request_context import (
    RequestIdLogFilter,
    RequestIdMiddleware,
    get_request_id,
    install_request_id_filter,
)

__all__ = [
    "RequestIdLogFilter",
    "RequestIdMiddleware",
    "get_request_id",
    "install_request_id_filter",
]
