"""Run context shared by the stages of one import."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

from ..utils.errors import Cancelled
from ..utils.trace import ImportTracer

if TYPE_CHECKING:  # pragma: no cover
    from .page_data import PageTextSource

LOGGER = logging.getLogger(__name__)

ProgressSink = Callable[[str], None]


class CancellationToken:
    """Cooperative cancellation flag, safe to set from another thread."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled()


@dataclass
class RunContext:
    """Everything one import run may touch: the page source, cancel flag and sinks."""

    source: Optional["PageTextSource"] = None
    cancel: CancellationToken = field(default_factory=CancellationToken)
    progress: Optional[ProgressSink] = None
    tracer: Optional[ImportTracer] = None

    def check(self) -> None:
        self.cancel.raise_if_cancelled()

    def report(self, message: str, *args: object) -> None:
        text = message % args if args else message
        LOGGER.info(text)
        if self.progress is not None:
            self.progress(text)

    def trace(self, event_type: str, **data: object) -> None:
        if self.tracer is not None:
            self.tracer.ev(event_type, **data)


__all__ = ["CancellationToken", "ProgressSink", "RunContext"]
