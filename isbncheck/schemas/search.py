from __future__ import annotations

from isbncheck.services.catalog.types import RemoteRecord
from pydantic import BaseModel


class SearchOut(BaseModel):
    items: list[RemoteRecord]


class SearchErrorOut(BaseModel):
    error: str
