from __future__ import annotations

from datetime import date
from urllib.parse import quote

from isbncheck.services.validation.store import ResultStore

EXPORT_MEDIA_TYPE = "text/csv; charset=utf-8"


def export_filename(today: date | None = None) -> str:
    return f"도서검증결과_{(today or date.today()).isoformat()}.csv"


def export_bytes(store: ResultStore) -> bytes:
    # BOM so spreadsheet tools pick up UTF-8.
    return store.to_csv().encode("utf-8-sig")


def content_disposition(filename: str) -> str:
    # Header values are latin-1; the Korean name goes in the RFC 5987 form.
    return f"attachment; filename=\"export.csv\"; filename*=UTF-8''{quote(filename)}"
