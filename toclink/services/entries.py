"""Decode table-of-contents entries from JSON payloads and LLM replies."""

from __future__ import annotations

import json
import math
import re
from typing import Any, Dict, Iterable, List

from ..models import RawEntry
from ..utils.errors import FormatError

ENTRY_KEYS = ("entries", "toc", "items")
DEFAULT_TITLE = "Untitled"

LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
FENCE_OPEN_RE = re.compile(r"^```(?:json)?\n?")
FENCE_CLOSE_RE = re.compile(r"\n?```$")
BRACES_RE = re.compile(r"\{[\s\S]*\}")


def _present(value: Any) -> bool:
    """Truthiness where empty containers still count as present."""

    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0
    if isinstance(value, str):
        return value != ""
    return True


def leading_int(value: Any) -> int | None:
    """Integer at the start of ``value`` (``"12abc"`` -> 12), else ``None``."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else None


def coerce_entry(item: Any) -> RawEntry:
    data: Dict[str, Any] = item if isinstance(item, dict) else {}
    title_value = data.get("title")
    title = str(title_value if _present(title_value) else DEFAULT_TITLE).strip() or DEFAULT_TITLE
    page = leading_int(data.get("page")) or 0
    level = max(1, leading_int(data.get("level")) or 1)
    return RawEntry(title=title, page=page, level=level)


def _entry_list(parsed: Any, message: str) -> List[RawEntry]:
    candidates: Any = parsed
    if isinstance(parsed, dict):
        for key in ENTRY_KEYS:
            if _present(parsed.get(key)):
                candidates = parsed[key]
                break
    if not isinstance(candidates, list):
        raise FormatError(message, code="entries_missing")
    return [coerce_entry(item) for item in candidates]


def parse_entries_payload(payload: Any) -> List[RawEntry]:
    """Entries from JSON text or an already decoded object.

    The array may sit under ``entries``, ``toc`` or ``items``, or be the
    payload itself.
    """

    parsed = payload
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        try:
            parsed = json.loads(payload)
        except ValueError as exc:
            raise FormatError(
                f"Entries payload is not valid JSON: {exc}", code="invalid_json"
            ) from exc
    return _entry_list(parsed, "JSON does not contain an entries array")


def parse_llm_response(text: str) -> List[RawEntry]:
    """Entries from a model reply, tolerating a code fence or surrounding prose."""

    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = FENCE_CLOSE_RE.sub("", FENCE_OPEN_RE.sub("", cleaned, count=1), count=1)
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        match = BRACES_RE.search(text or "")
        if not match:
            raise FormatError("Could not parse LLM response as JSON", code="invalid_json") from None
        try:
            parsed = json.loads(match.group(0))
        except ValueError as exc:
            raise FormatError("Could not parse LLM response as JSON", code="invalid_json") from exc
    return _entry_list(parsed, "LLM response does not contain an entries array")


def export_entries(entries: Iterable[RawEntry]) -> Dict[str, List[Dict[str, Any]]]:
    return {"entries": [entry.to_dict() for entry in entries]}


__all__ = [
    "ENTRY_KEYS",
    "coerce_entry",
    "export_entries",
    "leading_int",
    "parse_entries_payload",
    "parse_llm_response",
]
