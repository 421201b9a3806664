"""Smoke tests for the health endpoint located within the toclink package."""

from __future__ import annotations

import logging

from fastapi.testclient import TestClient

from .. import __version__
from ..main import app
from ..middleware import RequestIdLogFilter
from ..middleware.request_context import choose_request_id


def test_health_endpoint_returns_ok() -> None:
    """The `/api/health` route should report success and the package version."""

    with TestClient(app) as client:
        response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "version": __version__}
    assert response.headers["X-Request-ID"]


def test_health_request_id_header_is_sanitised() -> None:
    """Ensure the request-id middleware normalises identifiers for health responses."""

    with TestClient(app) as client:
        response = client.get("/api/health", headers={"X-Request-ID": "  weird id "})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] != "  weird id "
    assert response.headers["X-Request-ID"].strip() == response.headers["X-Request-ID"]


def test_health_request_id_is_echoed_when_valid() -> None:
    with TestClient(app) as client:
        response = client.get("/api/health", headers={"X-Request-ID": " run-42 "})

    assert response.headers["X-Request-ID"] == "run-42"


def test_log_filter_defaults_outside_requests() -> None:
    record = logging.LogRecord("toclink", logging.INFO, __file__, 1, "hello", None, None)

    assert RequestIdLogFilter().filter(record) is True
    assert record.request_id == "-"


def test_choose_request_id_rejects_unsafe_values() -> None:
    assert choose_request_id("abc.DEF_1-2") == "abc.DEF_1-2"
    assert len(choose_request_id("has space")) == 32
    assert len(choose_request_id("x" * 65)) == 32
    assert len(choose_request_id(None)) == 32
