from __future__ import annotations

from typing import Callable, Sequence

from isbncheck.domain.types import CANONICAL_FIELDS, CanonicalField, ColumnMapping

Predicate = Callable[[str], bool]


def _contains(token: str) -> Predicate:
    return lambda column: token in column


def _icontains(token: str) -> Predicate:
    token = token.lower()
    return lambda column: token in column.lower()


# Korean tokens match as exact substrings, Latin tokens case-insensitively.
FIELD_PREDICATES: dict[CanonicalField, tuple[Predicate, ...]] = {
    "title": (_contains("제목"), _contains("타이틀"), _contains("도서명"), _icontains("title")),
    "isbn": (_icontains("isbn"),),
    "price": (_contains("가격"), _contains("재정가"), _icontains("price")),
    "author": (_contains("저자"), _contains("작가"), _icontains("author")),
}

REQUIRED_FIELDS: tuple[CanonicalField, ...] = ("isbn", "price", "author")


class MappingError(Exception):
    def __init__(
        self,
        message: str,
        *,
        missing: Sequence[str] = (),
        unknown: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.missing = list(missing)
        self.unknown = list(unknown)


def auto_detect(columns: Sequence[str]) -> ColumnMapping:
    """Guess the column for each canonical field.

    For every field the header is scanned in order and the first column that
    satisfies any of the field's predicates wins. Fields with no match stay
    unmapped.
    """
    picked: dict[str, str] = {}
    for field in CANONICAL_FIELDS:
        predicates = FIELD_PREDICATES[field]
        picked[field] = next(
            (col for col in columns if any(p(col) for p in predicates)),
            "",
        )
    return ColumnMapping(**picked)


def required_fields(*, require_title: bool = True) -> tuple[CanonicalField, ...]:
    if require_title:
        return ("title",) + REQUIRED_FIELDS
    return REQUIRED_FIELDS


def confirm(
    mapping: ColumnMapping,
    columns: Sequence[str],
    *,
    require_title: bool = True,
) -> ColumnMapping:
    missing = [f for f in required_fields(require_title=require_title) if not mapping.column_for(f)]
    if missing:
        raise MappingError(
            f"required fields are not mapped: {', '.join(missing)}", missing=missing
        )

    known = set(columns)
    unknown = [
        mapping.column_for(f)
        for f in CANONICAL_FIELDS
        if mapping.column_for(f) and mapping.column_for(f) not in known
    ]
    if unknown:
        raise MappingError(
            f"mapped columns are not in the CSV header: {', '.join(unknown)}",
            unknown=unknown,
        )

    return mapping
