from __future__ import annotations

from typing import Any, Dict


class TocImportError(Exception):
    """Base class for failures that terminate a table-of-contents import run."""

    default_code = "import_error"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        extra: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "detail": self.message}
        if self.extra:
            payload["extra"] = self.extra
        return payload


class FormatError(TocImportError):
    """Raised when an entry payload does not hold a recognisable entries array."""

    default_code = "format_error"


class ValidationError(TocImportError):
    """Raised when caller input is unusable, e.g. a blank page range."""

    default_code = "validation_error"


class Cancelled(TocImportError):
    """Raised when the run's cancellation token was observed as set."""

    default_code = "cancelled"

    def __init__(self, message: str = "Import cancelled", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class UpstreamError(TocImportError):
    """Raised when the text or LLM collaborator failed or returned nothing usable."""

    default_code = "upstream_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        extra: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code=code, extra=extra)
        self.status_code = status_code


__all__ = [
    "TocImportError",
    "FormatError",
    "ValidationError",
    "Cancelled",
    "UpstreamError",
]
