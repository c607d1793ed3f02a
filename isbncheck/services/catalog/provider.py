from __future__ import annotations

from typing import Protocol

from isbncheck.services.catalog.types import RemoteRecord


class CatalogProvider(Protocol):
    name: str

    async def search_isbn(self, isbn: str) -> list[RemoteRecord]:
        """Return matching records, best first; [] when nothing matches.

        Raises CatalogProviderError when the upstream service fails.
        """
        ...
