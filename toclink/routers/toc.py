"""Table-of-contents import endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from ..config import Settings, get_settings
from ..models import RawEntry
from ..services.entries import export_entries, parse_llm_response
from ..services.hierarchy import normalize_hierarchy
from ..services.page_range import parse_page_range
from ..services.text_extraction import open_text_source
from ..services.toc_import import (
    extract_entries_with_llm,
    extract_toc_source_text,
    external_toc_text,
    load_entries,
    new_run_context,
    resolve_document,
)
from ..utils.errors import ValidationError

LOGGER = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1MB
ALLOWED_MIMETYPES = {"application/pdf", "application/octet-stream"}

router = APIRouter(prefix="/api/toc", tags=["toc"])


class EntryModel(BaseModel):
    title: str
    page: int = 0
    level: int = 1


class EntriesRequest(BaseModel):
    """Raw entry text: a JSON document, or a model reply when ``format`` is ``llm``."""

    content: str
    format: Literal["json", "llm"] = "json"


class EntriesResponse(BaseModel):
    entries: List[EntryModel]
    count: int


async def _read_pdf(upload: UploadFile, settings: Settings) -> bytes:
    if upload.content_type and upload.content_type.lower() not in ALLOWED_MIMETYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Unsupported file type"
        )

    chunks: List[bytes] = []
    total_bytes = 0
    while True:
        chunk = await upload.read(CHUNK_SIZE)
        if not chunk:
            break
        total_bytes += len(chunk)
        if total_bytes > settings.max_upload_size:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="File exceeds maximum allowed size",
            )
        chunks.append(chunk)

    if not total_bytes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty upload")
    LOGGER.info("Received %s (%d bytes)", upload.filename or "<unnamed>", total_bytes)
    return b"".join(chunks)


def _resolve_pdf(
    data: bytes, entries: List[RawEntry], engine: Optional[str], settings: Settings
) -> Dict[str, Any]:
    source = open_text_source(data, engine or settings.parser_engine)
    try:
        context = new_run_context(source, settings)
        return resolve_document(entries, context, settings).to_dict()
    finally:
        source.close()


def _extract_pdf(
    data: bytes, pages: Optional[str], engine: Optional[str], settings: Settings
) -> Dict[str, Any]:
    source = open_text_source(data, engine or settings.parser_engine)
    try:
        selected = parse_page_range(pages, source.page_count) if pages else None
        context = new_run_context(source, settings)
        text = extract_toc_source_text(
            source, selected, context, min_chars_per_page=settings.min_chars_per_page
        )
        return export_entries(extract_entries_with_llm(settings, text, context))
    finally:
        source.close()


def _extract_text(text: str, settings: Settings) -> Dict[str, Any]:
    context = new_run_context(None, settings)
    return export_entries(extract_entries_with_llm(settings, external_toc_text(text), context))


@router.post("/entries", response_model=EntriesResponse)
def parse_entries(request: EntriesRequest) -> EntriesResponse:
    """Normalise entries supplied as JSON or as a raw model reply."""

    if request.format == "llm":
        entries = normalize_hierarchy(parse_llm_response(request.content))
    else:
        entries = load_entries(request.content)
    return EntriesResponse(
        entries=[EntryModel(**entry.to_dict()) for entry in entries], count=len(entries)
    )


@router.post("/resolve")
async def resolve_toc(
    *,
    file: UploadFile = File(...),
    entries: str = Form(...),
    engine: Optional[str] = Form(None),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Resolve the posted entries against the uploaded PDF."""

    data = await _read_pdf(file, settings)
    parsed = load_entries(entries)
    return await run_in_threadpool(_resolve_pdf, data, parsed, engine, settings)


@router.post("/extract")
async def extract_toc(
    *,
    file: Optional[UploadFile] = File(None),
    pages: Optional[str] = Form(None),
    text: Optional[str] = Form(None),
    engine: Optional[str] = Form(None),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Extract entries with the LLM from pasted TOC text or from an uploaded PDF.

    With a PDF, ``pages`` selects the TOC pages; every page is sent when it
    is omitted.
    """

    if text is not None:
        if file is not None or pages:
            raise ValidationError(
                "Send either a PDF or TOC text, not both", code="conflicting_sources"
            )
        return await run_in_threadpool(_extract_text, text, settings)
    if file is None:
        raise ValidationError("Send a PDF or TOC text", code="missing_source")

    data = await _read_pdf(file, settings)
    return await run_in_threadpool(_extract_pdf, data, pages, engine, settings)


__all__ = ["router", "EntriesRequest", "EntriesResponse", "EntryModel"]
