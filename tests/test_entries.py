"""Tests for entry payload parsing, LLM reply repair and page ranges."""

from __future__ import annotations

import json

import pytest

from toclink.models import RawEntry
from toclink.services.entries import (
    export_entries,
    leading_int,
    parse_entries_payload,
    parse_llm_response,
)
from toclink.services.page_range import parse_page_range
from toclink.utils.errors import FormatError, ValidationError


@pytest.mark.parametrize("key", ["entries", "toc", "items"])
def test_entries_found_under_known_keys(key) -> None:
    payload = json.dumps({key: [{"title": "Intro", "page": 3, "level": 1}]})

    assert parse_entries_payload(payload) == [RawEntry("Intro", 3, 1)]


def test_bare_array_and_decoded_objects_are_accepted() -> None:
    assert parse_entries_payload([{"title": "A"}]) == [RawEntry("A", 0, 1)]
    assert parse_entries_payload(b'{"entries": []}') == []


def test_items_are_coerced_leniently() -> None:
    entries = parse_entries_payload(
        {
            "entries": [
                {"title": "  Spaced  ", "page": "12abc", "level": "2"},
                {"title": "", "page": None, "level": 0},
                {"page": 4.9, "level": -3},
                "not an object",
                {"title": 42, "page": "x", "level": "deep"},
            ]
        }
    )

    assert entries == [
        RawEntry("Spaced", 12, 2),
        RawEntry("Untitled", 0, 1),
        RawEntry("Untitled", 4, 1),
        RawEntry("Untitled", 0, 1),
        RawEntry("42", 0, 1),
    ]


@pytest.mark.parametrize("payload", ['{"entries": "nope"}', '{"title": "x"}', "3", "{not json"])
def test_payload_without_entries_array_is_rejected(payload) -> None:
    with pytest.raises(FormatError):
        parse_entries_payload(payload)


def test_leading_int() -> None:
    assert leading_int(" -7 apples") == -7
    assert leading_int(True) is None
    assert leading_int(float("nan")) is None
    assert leading_int("abc") is None


def test_llm_reply_with_code_fence() -> None:
    reply = '```json\n{"entries": [{"title": "Scope", "page": 1, "level": 1}]}\n```'

    assert parse_llm_response(reply) == [RawEntry("Scope", 1, 1)]


def test_llm_reply_with_surrounding_prose() -> None:
    reply = 'Here you go: {"toc": [{"title": "Scope", "page": "2"}]} Hope this helps.'

    assert parse_llm_response(reply) == [RawEntry("Scope", 2, 1)]


@pytest.mark.parametrize("reply", ["no json here", "{broken: }", '{"entries": {}}'])
def test_unusable_llm_reply_raises(reply) -> None:
    with pytest.raises(FormatError):
        parse_llm_response(reply)


def test_export_keeps_raw_fields_only() -> None:
    assert export_entries([RawEntry("A", 2, 1)]) == {
        "entries": [{"title": "A", "page": 2, "level": 1}]
    }


def test_page_range_parsing() -> None:
    assert parse_page_range("3, 1-2, 2", 10) == [1, 2, 3]
    assert parse_page_range("8-20", 10) == [8, 9, 10]
    assert parse_page_range("0-2, 11, x, 5-", 10) == [1, 2]


@pytest.mark.parametrize("text", ["", "   ", "abc", "11, 12", "0"])
def test_invalid_page_range_raises(text) -> None:
    with pytest.raises(ValidationError):
        parse_page_range(text, 10)
