"""Command-line entrypoint for TocLink."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional

import uvicorn

from .config import PARSER_ENGINES, get_settings
from .models import PageRecord, RawEntry
from .services.context import RunContext
from .services.entries import export_entries
from .services.gap_inference import (
    OffsetEstimate,
    detect_printed_page_offset,
    fill_page_map,
    harvest_page_labels,
)
from .services.page_data import extract_page_records
from .services.page_map import build_page_number_map, chosen_sequence
from .services.page_range import parse_page_range
from .services.resolver import VERIFY_RADIUS
from .services.text_extraction import open_text_source
from .services.title_match import find_title_near, prepare_page
from .services.toc_import import (
    extract_entries_with_llm,
    extract_toc_source_text,
    external_toc_text,
    load_entries,
    new_run_context,
    resolve_document,
)
from .utils.errors import Cancelled, TocImportError, ValidationError
from .utils.logging import configure_logging

LOGGER = logging.getLogger("toclink.cli")

EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="toclink", description=__doc__)
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Log level (TRACE, DEBUG, INFO, ...).",
    )
    parser.add_argument(
        "--engine",
        choices=PARSER_ENGINES,
        default=settings.parser_engine,
        help="PDF text extraction engine.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    resolve = commands.add_parser("resolve", help="Resolve TOC entries to PDF pages.")
    resolve.add_argument("pdf", type=Path)
    resolve.add_argument("entries", type=Path, help="JSON file holding the entries.")
    resolve.add_argument("--output", type=Path, help="Write the resolved outline here.")
    resolve.add_argument("--export", type=Path, help="Also write the normalised entries here.")

    diagnose = commands.add_parser("diagnose", help="Show detected printed page numbers.")
    diagnose.add_argument("pdf", type=Path)
    diagnose.add_argument(
        "--entries", type=Path, help="Entries used to vote a global page offset."
    )

    extract = commands.add_parser("extract", help="Extract TOC entries with the LLM.")
    extract.add_argument("pdf", type=Path, nargs="?", help="PDF holding the TOC.")
    extract.add_argument(
        "--pages", help='Pages holding the TOC, e.g. "2-4" (default: every page).'
    )
    extract.add_argument(
        "--text", type=Path, help="A .txt or .md file holding the TOC, used instead of a PDF."
    )
    extract.add_argument("--output", type=Path, help="Write the entries JSON here.")

    serve = commands.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)
    serve.add_argument("--reload", action="store_true", help="Enable autoreload.")

    return parser.parse_args(argv)


@contextmanager
def cancel_on_interrupt(context: RunContext) -> Iterator[None]:
    """Turn Ctrl-C into a cooperative cancel for the duration of a run."""

    previous = signal.getsignal(signal.SIGINT)
    signal.signal(signal.SIGINT, lambda *_: context.cancel.cancel())
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _write_json(payload: Any, path: Optional[Path]) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if path is None:
        print(text)
        return
    path.write_text(text + "\n", encoding="utf-8")
    LOGGER.info("Wrote %s", path)


def run_resolve(args: argparse.Namespace) -> None:
    settings = get_settings()
    entries = load_entries(args.entries.read_text(encoding="utf-8"))
    if args.export:
        _write_json(export_entries(entries), args.export)

    source = open_text_source(args.pdf, args.engine)
    try:
        context = new_run_context(source, settings)
        with cancel_on_interrupt(context):
            result = resolve_document(entries, context, settings)
    finally:
        source.close()
    _write_json(result.to_dict(), args.output)
    print(result.summary(), file=sys.stderr)


def run_diagnose(args: argparse.Namespace) -> None:
    settings = get_settings()
    source = open_text_source(args.pdf, args.engine)
    try:
        context = new_run_context(source, settings)
        with cancel_on_interrupt(context):
            records = extract_page_records(context, progress_every=settings.progress_every)
    finally:
        source.close()

    page_map = build_page_number_map(records)
    if settings.gap_inference:
        fill_page_map(page_map, chosen_sequence(records, page_map.position))

    print(f"{'page':>5} {'top':>6} {'bottom':>6} {'printed':>8}")
    for record in records:
        printed = page_map.physical_to_printed.get(record.index)
        label = "-" if printed is None else str(printed)
        if record.index in page_map.inferred:
            label += "*"
        print(
            f"{record.index + 1:>5} {record.candidate_top or '-':>6} "
            f"{record.candidate_bottom or '-':>6} {label:>8}"
        )
    print(
        f"position={page_map.position} top_score={page_map.top_score} "
        f"bottom_score={page_map.bottom_score} mapped={len(page_map)} "
        f"inferred={len(page_map.inferred)}"
    )

    if args.entries:
        entries = load_entries(args.entries.read_text(encoding="utf-8"))
        print_offset_projection(entries, records)


def print_offset_projection(entries: List[RawEntry], records: List[PageRecord]) -> int:
    """Place every entry with the global offset and report whether its title is there.

    Returns how many entries were verified.
    """

    label_sets = [harvest_page_labels(record) for record in records]
    estimate = detect_printed_page_offset(entries, label_sets)
    if estimate is None:
        print("offset: no votes")
        estimate = OffsetEstimate(offset=0, votes=0)
    else:
        print(f"offset: {estimate.offset:+d} ({estimate.votes} votes)")

    pages = [prepare_page(record.text) for record in records]
    verified = 0
    for position, entry in enumerate(entries):
        target = estimate.project(entry.page, label_sets)
        ok = find_title_near(entry.title, pages, target, VERIFY_RADIUS) is not None
        verified += ok
        print(
            f"{position:>4} printed={entry.page} target={target + 1} "
            f"ok={'yes' if ok else 'no'} {entry.title}"
        )
    print(f"verified: {verified}/{len(entries)}")
    return verified


def run_extract(args: argparse.Namespace) -> None:
    settings = get_settings()
    if args.text is not None:
        if args.pdf is not None or args.pages:
            raise ValidationError(
                "Give either a PDF or --text, not both", code="conflicting_sources"
            )
        text = external_toc_text(args.text.read_text(encoding="utf-8"))
        context = new_run_context(None, settings)
        with cancel_on_interrupt(context):
            entries = extract_entries_with_llm(settings, text, context)
        _write_json(export_entries(entries), args.output)
        return
    if args.pdf is None:
        raise ValidationError("Give a PDF or --text FILE", code="missing_source")

    source = open_text_source(args.pdf, args.engine)
    try:
        pages = parse_page_range(args.pages, source.page_count) if args.pages else None
        context = new_run_context(source, settings)
        with cancel_on_interrupt(context):
            text = extract_toc_source_text(
                source, pages, context, min_chars_per_page=settings.min_chars_per_page
            )
            entries = extract_entries_with_llm(settings, text, context)
    finally:
        source.close()
    _write_json(export_entries(entries), args.output)


def run_serve(args: argparse.Namespace) -> None:
    settings = get_settings()
    uvicorn.run(
        "toclink.main:app",
        host=args.host,
        port=args.port,
        log_level=settings.log_level,
        reload=args.reload,
    )


COMMANDS = {
    "resolve": run_resolve,
    "diagnose": run_diagnose,
    "extract": run_extract,
    "serve": run_serve,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level, stream=sys.stderr)
    try:
        COMMANDS[args.command](args)
    except Cancelled as exc:
        print(f"Cancelled: {exc.message}", file=sys.stderr)
        return EXIT_CANCELLED
    except TocImportError as exc:
        print(f"Error [{exc.code}]: {exc.message}", file=sys.stderr)
        return EXIT_FAILURE
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    return 0


if __name__ == "__main__":
    sys.exit(main())
