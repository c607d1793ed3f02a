from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

import uvicorn
from isbncheck.core.config import settings
from isbncheck.core.logging import configure_logging
from isbncheck.domain.mapping import MappingError, auto_detect, confirm
from isbncheck.domain.types import ColumnMapping
from isbncheck.ingestion.csv_import import ParseError, parse_csv
from isbncheck.services.catalog.factory import get_provider
from isbncheck.services.export import export_bytes, export_filename
from isbncheck.services.lookup import HttpLookupClient, LookupClient, ProviderLookupClient
from isbncheck.services.validation.engine import ValidationEngine
from isbncheck.services.validation.store import ResultStore

LOGGER = logging.getLogger("isbncheck.cli")

EXIT_OK = 0
EXIT_INPUT_ERROR = 2


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="isbncheck", description="Validate CSV book records against an ISBN catalog"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Validate a CSV file and write a result CSV")
    validate.add_argument("file", help="Path to the CSV file")
    validate.add_argument("--output", help="Result CSV path (default: 도서검증결과_<date>.csv)")
    validate.add_argument(
        "--search-url",
        help="Base URL of an isbncheck API; without it the configured catalog is used directly",
    )
    for field in ("title", "isbn", "price", "author"):
        validate.add_argument(
            f"--{field}-column",
            dest=f"{field}_column",
            help=f"Column holding the {field} (overrides auto-detection)",
        )
    validate.add_argument(
        "--allow-missing-title",
        action="store_true",
        help="Do not require a title column",
    )
    validate.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Optional limit for the number of rows to process",
    )
    validate.add_argument("--verbose", action="store_true", help="Enable debug logging")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser.parse_args(argv)


def _build_client(args: argparse.Namespace) -> LookupClient:
    if args.search_url:
        return HttpLookupClient(args.search_url, timeout=settings.lookup_timeout_secs)
    return ProviderLookupClient(get_provider())


def _resolve_mapping(args: argparse.Namespace, columns: Sequence[str]) -> ColumnMapping:
    mapping = auto_detect(columns)
    for field in ("title", "isbn", "price", "author"):
        override = getattr(args, f"{field}_column")
        if override:
            mapping = mapping.with_field(field, override)  # type: ignore[arg-type]
    require_title = settings.require_title_mapping and not args.allow_missing_title
    return confirm(mapping, columns, require_title=require_title)


def _validate(args: argparse.Namespace) -> int:
    path = Path(args.file).expanduser()
    try:
        parsed = parse_csv(path.read_bytes(), required_columns=settings.required_csv_columns or None)
    except ParseError as e:
        LOGGER.error("Could not read %s: %s", path, e)
        for encoding, reason in e.attempts:
            LOGGER.error("  %s: %s", encoding, reason)
        return EXIT_INPUT_ERROR
    except OSError as e:
        LOGGER.error("Could not open %s: %s", path, e)
        return EXIT_INPUT_ERROR

    try:
        mapping = _resolve_mapping(args, parsed.columns)
    except MappingError as e:
        LOGGER.error("Column mapping failed: %s", e)
        LOGGER.error("Available columns: %s", ", ".join(parsed.columns))
        return EXIT_INPUT_ERROR

    rows = parsed.rows if args.limit is None else parsed.rows[: args.limit]
    LOGGER.info(
        "Validating %d rows from %s (encoding=%s, mapping=%s)",
        len(rows),
        path,
        parsed.encoding,
        mapping.as_dict(),
    )

    def on_notice(result) -> None:
        LOGGER.warning("Row %d: %s", result.index + 1, result.error_message)

    engine = ValidationEngine(_build_client(args), lookup_timeout=settings.lookup_timeout_secs)
    report = asyncio.run(engine.run(rows, mapping, on_notice=on_notice))

    store = ResultStore(report.results, mapping)
    output = Path(args.output) if args.output else Path(export_filename())
    output.write_bytes(export_bytes(store))

    counts = store.counts()
    LOGGER.info(
        "Done: %d valid, %d mismatch, %d not found, %d lookup errors -> %s",
        counts["valid"],
        counts["mismatch"],
        counts["not_found"],
        counts["lookup_error"],
        output,
    )
    return EXIT_OK


def _serve(args: argparse.Namespace) -> int:
    uvicorn.run("isbncheck.main:app", host=args.host, port=args.port)
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging("DEBUG" if getattr(args, "verbose", False) else settings.log_level)

    if args.command == "serve":
        return _serve(args)
    return _validate(args)


if __name__ == "__main__":
    sys.exit(main())
