from __future__ import annotations

import json
from pathlib import Path

from isbncheck.domain.normalize import clean_isbn
from isbncheck.services.catalog.types import RemoteRecord


class FixtureProvider:
    """Serves records from a local JSON file; used for demos and tests.

    File shape: {"items": [{"title": ..., "isbn": ..., "discount": ..., ...}]}.
    """

    name = "fixture"

    def __init__(self, fixture_path: str):
        self.fixture_path = fixture_path
        self._items = self._load()

    def _load(self) -> list[RemoteRecord]:
        p = Path(self.fixture_path)
        if not p.exists():
            raise FileNotFoundError(f"Fixture file not found: {p}")
        raw = json.loads(p.read_text(encoding="utf-8"))
        return [RemoteRecord.model_validate(it) for it in raw.get("items", [])]

    async def search_isbn(self, isbn: str) -> list[RemoteRecord]:
        wanted = clean_isbn(isbn)
        if not wanted:
            return []
        return [it for it in self._items if clean_isbn(it.isbn) == wanted]
