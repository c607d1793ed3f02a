from __future__ import annotations

import csv
import io
import logging
import re
from typing import Sequence

from isbncheck.domain.types import ParsedCsv, RawRow, freeze_row
from isbncheck.ingestion.encoding import DETECT_SAMPLE_SIZE, detect_encoding

logger = logging.getLogger(__name__)

# Tried in order; the first one that yields a sensible table wins.
ENCODING_CANDIDATES: tuple[str, ...] = ("utf-8", "cp949", "euc-kr")

# utf-8-sig decodes plain UTF-8 too, and drops a leading byte-order mark.
_CODECS = {"utf-8": "utf-8-sig"}

# Lower-cased substrings that mark a header as belonging to a book list.
HEADER_KEYWORDS: tuple[str, ...] = ("title", "제목", "isbn", "가격", "price", "저자", "author")

_suspicious = re.compile("[\ufffd\ufffe\uffff]")


class ParseError(Exception):
    def __init__(self, message: str, *, attempts: Sequence[tuple[str, str]] = ()) -> None:
        super().__init__(message)
        self.attempts = list(attempts)


class _Rejected(Exception):
    pass


def _decode(content: bytes, encoding: str) -> str:
    try:
        text = content.decode(_CODECS.get(encoding, encoding))
    except UnicodeDecodeError as e:
        raise _Rejected(f"undecodable: {e.reason} at byte {e.start}") from e

    # A "successful" decode that produces these is almost always the wrong codec.
    if _suspicious.search(text) or any(ord(ch) > 0xFFFF for ch in text):
        raise _Rejected("decoded text contains replacement or non-BMP characters")
    return text


def _dedupe_header(header: list[str]) -> list[str]:
    used: set[str] = set()
    out: list[str] = []
    for name in header:
        candidate = name
        n = 0
        while candidate in used:
            n += 1
            candidate = f"{name}_{n}"
        used.add(candidate)
        out.append(candidate)
    return out


def _is_blank(record: list[str]) -> bool:
    return not any(cell.strip() for cell in record)


def _read_table(text: str) -> tuple[list[str], list[RawRow]]:
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=",")
    header: list[str] | None = None
    rows: list[RawRow] = []

    try:
        for record in reader:
            if _is_blank(record):
                continue
            if header is None:
                header = _dedupe_header(record)
                continue
            if len(record) != len(header):
                raise _Rejected(
                    f"line {reader.line_num}: expected {len(header)} fields, got {len(record)}"
                )
            rows.append(freeze_row(dict(zip(header, record))))
    except csv.Error as e:
        raise _Rejected(f"line {reader.line_num}: {e}") from e

    if header is None:
        raise _Rejected("missing header row")
    if not rows:
        raise _Rejected("no data rows")
    return header, rows


def _has_keyword(columns: Sequence[str]) -> bool:
    return any(k in col.lower() for col in columns for k in HEADER_KEYWORDS)


def _missing_columns(columns: Sequence[str], required: Sequence[str]) -> list[str]:
    present = set(columns)
    return [c for c in required if c not in present]


def parse_csv(content: bytes, *, required_columns: Sequence[str] | None = None) -> ParsedCsv:
    """Decode and parse an uploaded CSV into header-keyed rows.

    Each candidate encoding is tried in turn. A candidate is accepted only when
    it decodes without suspicious characters, parses into a structurally
    consistent table with at least one data row, and its header contains a
    recognizable book-list keyword. All values stay strings.

    `required_columns` switches on fixed-column mode: the header must then
    contain every listed column, and an empty upload is reported as missing
    all of them.
    """
    required = [c for c in (required_columns or ()) if c]
    if required and not content.strip():
        raise ParseError(f"missing required columns: {', '.join(required)}")

    logger.debug("encoding hint: %s", detect_encoding(content[:DETECT_SAMPLE_SIZE]))

    attempts: list[tuple[str, str]] = []
    decoded_header: list[str] | None = None

    for encoding in ENCODING_CANDIDATES:
        try:
            text = _decode(content, encoding)
            columns, rows = _read_table(text)
        except _Rejected as e:
            logger.debug("rejected encoding %s: %s", encoding, e)
            attempts.append((encoding, str(e)))
            continue

        recognizable = _has_keyword(columns) or (
            bool(required) and not _missing_columns(columns, required)
        )
        if not recognizable:
            logger.debug("rejected encoding %s: no recognizable column names", encoding)
            attempts.append((encoding, "no recognizable column names"))
            if decoded_header is None:
                decoded_header = columns
            continue

        if required:
            missing = _missing_columns(columns, required)
            if missing:
                raise ParseError(f"missing required columns: {', '.join(missing)}")

        logger.info("parsed %d rows with encoding %s", len(rows), encoding)
        return ParsedCsv(columns=tuple(columns), rows=tuple(rows), encoding=encoding)

    if required and decoded_header is not None:
        missing = _missing_columns(decoded_header, required)
        raise ParseError(f"missing required columns: {', '.join(missing)}")

    raise ParseError("all encodings failed", attempts=attempts)
