from __future__ import annotations

from dataclasses import dataclass, fields, replace
from types import MappingProxyType
from typing import Literal, Mapping

# One CSV record keyed by header column. Read-only once parsed.
RawRow = Mapping[str, str]

CanonicalField = Literal["title", "isbn", "price", "author"]

CANONICAL_FIELDS: tuple[CanonicalField, ...] = ("title", "isbn", "price", "author")


def freeze_row(values: Mapping[str, str]) -> RawRow:
    return MappingProxyType(dict(values))


@dataclass(frozen=True)
class ParsedCsv:
    columns: tuple[str, ...]
    rows: tuple[RawRow, ...]
    encoding: str

    def __len__(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class ColumnMapping:
    """Maps each canonical field to a source column name ("" = unmapped)."""

    title: str = ""
    isbn: str = ""
    price: str = ""
    author: str = ""

    def column_for(self, field: CanonicalField) -> str:
        return getattr(self, field)

    def with_field(self, field: CanonicalField, column: str) -> ColumnMapping:
        if field not in CANONICAL_FIELDS:
            raise KeyError(field)
        return replace(self, **{field: column})

    def value(self, row: RawRow, field: CanonicalField) -> str:
        column = self.column_for(field)
        if not column:
            return ""
        return row.get(column) or ""

    def as_dict(self) -> dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
