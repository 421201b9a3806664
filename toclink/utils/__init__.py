"""Shared helpers: errors, logging and run tracing."""
