"""TocLink: resolve table-of-contents entries to physical PDF pages."""

__version__ = "0.1.0"

__all__ = ["__version__"]
