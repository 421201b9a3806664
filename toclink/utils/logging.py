from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s | %(message)s"
REQUEST_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] | %(message)s"


def trace(self: logging.Logger, msg: str, *args, **kwargs) -> None:  # type: ignore[override]
    if self.isEnabledFor(TRACE_LEVEL):
        self._log(TRACE_LEVEL, msg, args, **kwargs)


logging.Logger.trace = trace  # type: ignore[attr-defined]


def resolve_level(name: str | None, default: int = logging.INFO) -> int:
    """Return the numeric level for ``name`` (``TRACE`` included)."""

    if not name:
        return default
    name = name.strip().upper()
    if name == "TRACE":
        return TRACE_LEVEL
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def configure_logging(
    default_level: str = "INFO", fmt: str = LOG_FORMAT, stream: TextIO | None = None
) -> logging.Logger:
    level = resolve_level(os.getenv("TOCLINK_LOG_LEVEL", default_level))
    logging.basicConfig(level=level, stream=stream or sys.stdout, format=fmt)
    return logging.getLogger("toclink")


__all__ = [
    "TRACE_LEVEL",
    "LOG_FORMAT",
    "REQUEST_LOG_FORMAT",
    "configure_logging",
    "resolve_level",
]
