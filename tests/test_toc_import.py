"""Tests for the import orchestration helpers."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from toclink.config import Settings, get_settings
from toclink.models import RawEntry
from toclink.services import toc_import
from toclink.services.context import RunContext
from toclink.services.page_data import MemoryTextSource
from toclink.services.toc_import import (
    extract_entries_with_llm,
    extract_toc_source_text,
    load_entries,
    new_run_context,
    resolve_document,
)
from toclink.utils.errors import ValidationError

TOC_LINE = "Introduction .......... 1   Methods .......... 5   Results .......... 9"


def test_load_entries_repairs_levels() -> None:
    payload = json.dumps(
        {"entries": [{"title": "Introduction", "page": 1, "level": 1}, {"title": "Background", "page": 1, "level": 3}]}
    )

    assert [entry.level for entry in load_entries(payload)] == [1, 2]


def test_source_text_is_split_into_page_blocks(make_document) -> None:
    source = make_document([(["Cover"], None, None), ([TOC_LINE], None, None), ([TOC_LINE], None, None)])

    text = extract_toc_source_text(source, [2, 3], min_chars_per_page=20)

    assert text == f"--- Page 2 ---\n{TOC_LINE}\n\n--- Page 3 ---\n{TOC_LINE}"


def test_image_only_pages_are_rejected(make_document) -> None:
    source = make_document([(["ii"], None, None), ([], None, None)])

    with pytest.raises(ValidationError) as excinfo:
        extract_toc_source_text(source, None, min_chars_per_page=50)

    assert excinfo.value.code == "low_text_density"


def test_extract_entries_with_llm_parses_and_normalises(monkeypatch) -> None:
    seen = {}

    def fake_stream_chat(settings, messages, cancel=None, on_chunk=None):
        seen["user"] = messages[-1]["content"]
        return '```json\n{"entries": [{"title": "Scope", "page": 2, "level": 2}]}\n```'

    monkeypatch.setattr(toc_import, "stream_chat", fake_stream_chat)

    entries = extract_entries_with_llm(Settings(), "--- Page 1 ---\nScope 2")

    assert entries == [RawEntry("Scope", 2, 1)]
    assert seen["user"].endswith("--- Page 1 ---\nScope 2")


def test_resolve_document_requires_entries_and_pages(chapter_document) -> None:
    with pytest.raises(ValidationError):
        resolve_document([], RunContext(source=chapter_document))
    with pytest.raises(ValidationError):
        resolve_document([RawEntry("A", 1)], RunContext(source=MemoryTextSource([])))
    with pytest.raises(ValidationError):
        resolve_document([RawEntry("A", 1)], RunContext())


def test_gap_inference_can_be_disabled(chapter_document) -> None:
    entries = [RawEntry("Chapter Two: Methods", 2)]

    filled = resolve_document(entries, RunContext(source=chapter_document), Settings())
    sparse = resolve_document(
        entries, RunContext(source=chapter_document), Settings(gap_inference=False)
    )

    assert len(sparse.page_map) == 1
    assert len(filled.page_map) > 1
    assert 4 in filled.page_map.physical_to_printed
    assert filled.page_map.inferred == {3, 5, 6, 7, 8, 9}


def test_result_serialises_outline_and_summary(chapter_document) -> None:
    entries = [RawEntry("Chapter Two: Methods", 2), RawEntry("Appendix", 0)]

    payload = resolve_document(entries, RunContext(source=chapter_document)).to_dict()

    assert payload["summary"] == "Imported 2 entries: 1 verified, 0 uncertain, 1 not found."
    assert payload["outline"][0] == {
        "title": "Chapter Two: Methods",
        "level": 1,
        "page": 2,
        "page_index": 4,
        "confidence": "verified",
        "marker": None,
    }
    assert payload["outline"][1]["marker"] == "unverified"
    assert payload["outline"][1]["page_index"] == 4
    assert payload["page_count"] == 10


def test_traced_run_writes_jsonl_and_summary(monkeypatch, tmp_path, chapter_document) -> None:
    monkeypatch.setenv("TOCLINK_TRACE", "1")
    monkeypatch.setenv("TOCLINK_TRACE_DIR", str(tmp_path / "runs"))
    settings = Settings()

    context = new_run_context(chapter_document, settings)
    resolve_document([RawEntry("Chapter Two: Methods", 2)], context, settings)

    assert context.tracer is not None
    log_path = Path(context.tracer.path)
    summary = json.loads(Path(context.tracer.summary_path).read_text(encoding="utf-8"))
    event_types = [json.loads(line)["type"] for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert event_types == ["start_run", "page_map_built", "entry_resolved", "end_run"]
    assert summary["counts"] == {"verified": 1}
    assert summary["metadata"] == {"entries": 1, "page_count": 10}


def test_untraced_context_has_no_tracer(chapter_document) -> None:
    assert new_run_context(chapter_document, get_settings()).tracer is None
