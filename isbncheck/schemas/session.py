from __future__ import annotations

from isbncheck.schemas.run import RunOut
from pydantic import BaseModel


class ColumnMappingOut(BaseModel):
    title: str = ""
    isbn: str = ""
    price: str = ""
    author: str = ""


class ColumnMappingIn(BaseModel):
    """Partial update: omitted fields keep their column, "" unmaps a field."""

    title: str | None = None
    isbn: str | None = None
    price: str | None = None
    author: str | None = None


class SessionOut(BaseModel):
    id: str
    filename: str
    encoding: str
    columns: list[str]
    row_count: int
    preview: list[dict[str, str]]
    mapping: ColumnMappingOut
    mapping_confirmed: bool
    run: RunOut | None = None
