"""API router package."""

from . import health, toc

__all__ = ["health", "toc"]
