from __future__ import annotations

import csv
import io
from typing import Callable, Iterable, Literal, Sequence

from isbncheck.domain.normalize import clean_price, format_pubdate
from isbncheck.domain.types import ColumnMapping
from isbncheck.services.validation.types import Outcome, ValidationResult

SortField = Literal["title", "isbn", "price", "author", "status"]
SortDirection = Literal["asc", "desc"]
ResultPredicate = Callable[[ValidationResult], bool]

SORT_FIELDS: tuple[SortField, ...] = ("title", "isbn", "price", "author", "status")

VERDICT_COLUMN = "검증결과"
ERROR_COLUMN = "오류메시지"

# canonical field -> export column for the uploaded value
ORIGINAL_COLUMNS: dict[str, str] = {
    "title": "원본_도서명",
    "isbn": "원본_ISBN",
    "price": "원본_가격",
    "author": "원본_작가명",
}

# RemoteRecord attribute -> export column
REMOTE_COLUMNS: dict[str, str] = {
    "title": "API_도서명",
    "isbn": "API_ISBN",
    "discount": "API_가격",
    "author": "API_작가명",
    "publisher": "API_출판사",
    "pubdate": "API_출판일",
}


def outcome_filter(outcomes: Iterable[Outcome | str]) -> ResultPredicate:
    selected = {Outcome(o) for o in outcomes}
    if not selected:
        return lambda result: True
    return lambda result: result.outcome in selected


class ResultStore:
    """Ordered results of one validation run.

    Views never mutate the stored sequence; a new run gets a new store.
    """

    def __init__(self, results: Sequence[ValidationResult], mapping: ColumnMapping):
        self._results: tuple[ValidationResult, ...] = tuple(results)
        self.mapping = mapping

    def __len__(self) -> int:
        return len(self._results)

    @property
    def results(self) -> tuple[ValidationResult, ...]:
        return self._results

    def _sort_key(self, field: SortField):
        if field == "status":
            return lambda r: r.outcome.rank
        if field == "price":
            return lambda r: clean_price(self.mapping.value(r.original, "price"))
        if field not in SORT_FIELDS:
            raise ValueError(f"unknown sort field: {field}")
        return lambda r: self.mapping.value(r.original, field)

    def sorted_view(
        self, field: SortField | None = None, direction: SortDirection | None = None
    ) -> list[ValidationResult]:
        if field is None or direction is None:
            return list(self._results)
        key = self._sort_key(field)
        # sorted() is stable for reverse=True too, so ties keep input order.
        return sorted(self._results, key=key, reverse=direction == "desc")

    def filtered_view(
        self,
        predicate: ResultPredicate,
        results: Sequence[ValidationResult] | None = None,
    ) -> list[ValidationResult]:
        source = self._results if results is None else results
        return [r for r in source if predicate(r)]

    def counts(self) -> dict[str, int]:
        counts = {o.value: 0 for o in Outcome}
        for r in self._results:
            counts[r.outcome.value] += 1
        return counts

    def export_columns(self) -> list[str]:
        columns = [VERDICT_COLUMN, ERROR_COLUMN]
        columns += [
            header
            for field, header in ORIGINAL_COLUMNS.items()
            if self.mapping.column_for(field)
        ]
        columns += list(REMOTE_COLUMNS.values())
        return columns

    def to_export_records(self) -> list[dict[str, str]]:
        records = []
        for r in self._results:
            rec = {
                VERDICT_COLUMN: r.outcome.verdict_label,
                ERROR_COLUMN: r.error_message or "",
            }
            for field, header in ORIGINAL_COLUMNS.items():
                if self.mapping.column_for(field):
                    rec[header] = self.mapping.value(r.original, field)
            for attr, header in REMOTE_COLUMNS.items():
                value = getattr(r.remote_record, attr) if r.remote_record else ""
                if attr == "pubdate":
                    value = format_pubdate(value)
                rec[header] = value
            records.append(rec)
        return records

    def to_csv(self) -> str:
        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=self.export_columns())
        writer.writeheader()
        writer.writerows(self.to_export_records())
        return buf.getvalue()
