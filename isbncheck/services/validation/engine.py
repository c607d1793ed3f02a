from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Sequence

from isbncheck.domain.normalize import authors_match, clean_isbn, clean_price, titles_match
from isbncheck.domain.types import ColumnMapping, RawRow
from isbncheck.services.catalog.types import RemoteRecord
from isbncheck.services.lookup import Found, LookupClient, LookupOutcome, NotFound, TransportError
from isbncheck.services.validation.types import MatchDetails, Outcome, ValidationResult

logger = logging.getLogger(__name__)

EMPTY_ISBN_MESSAGE = "ISBN value is empty"
NOT_FOUND_MESSAGE = "no results found"

ResultCallback = Callable[[ValidationResult], None]
ProgressCallback = Callable[[int, int, int], None]
NoticeCallback = Callable[[ValidationResult], None]


class ValidationCancelled(Exception):
    pass


@dataclass
class EngineReport:
    results: list[ValidationResult] = field(default_factory=list)
    cancelled: bool = False


def progress_percent(done: int, total: int) -> int:
    """Completion percentage rounded half-up; an empty input counts as done."""
    if total <= 0:
        return 100
    return math.floor(done * 100 / total + 0.5)


def compare_record(
    row: RawRow, mapping: ColumnMapping, isbn: str, record: RemoteRecord
) -> MatchDetails:
    return MatchDetails(
        title=titles_match(record.title, mapping.value(row, "title")),
        isbn=clean_isbn(record.isbn) == isbn,
        price=clean_price(record.discount or "0")
        == clean_price(mapping.value(row, "price") or "0"),
        author=authors_match(record.author, mapping.value(row, "author")),
    )


def classify(details: MatchDetails) -> Outcome:
    return Outcome.valid if details.gate else Outcome.mismatch


class ValidationEngine:
    """Validates rows one at a time, in input order, against a lookup client.

    At most one lookup is in flight. A per-row failure never aborts the run;
    it is recorded as a lookup_error result and processing moves on.
    """

    def __init__(self, client: LookupClient, *, lookup_timeout: float | None = None):
        self.client = client
        self.lookup_timeout = lookup_timeout

    async def run(
        self,
        rows: Sequence[RawRow],
        mapping: ColumnMapping,
        *,
        on_result: ResultCallback | None = None,
        on_progress: ProgressCallback | None = None,
        on_notice: NoticeCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> EngineReport:
        total = len(rows)
        report = EngineReport()
        logger.info("validation started: %d rows", total)

        if total == 0 and on_progress is not None:
            on_progress(100, 0, 0)

        for index, row in enumerate(rows):
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                break
            try:
                result, notify = await self._validate_row(index, row, mapping, cancel_event)
            except ValidationCancelled:
                report.cancelled = True
                break
            except Exception as e:
                logger.exception("unexpected error validating row %d", index)
                result = ValidationResult(
                    index=index,
                    original=row,
                    outcome=Outcome.lookup_error,
                    error_message=f"unexpected error: {e}",
                )
                notify = True

            report.results.append(result)
            if on_result is not None:
                on_result(result)
            if notify and on_notice is not None:
                on_notice(result)
            if on_progress is not None:
                done = len(report.results)
                on_progress(progress_percent(done, total), done, total)

        if report.cancelled:
            logger.info("validation cancelled after %d of %d rows", len(report.results), total)
        else:
            logger.info("validation finished: %d rows", total)
        return report

    async def _validate_row(
        self,
        index: int,
        row: RawRow,
        mapping: ColumnMapping,
        cancel_event: asyncio.Event | None,
    ) -> tuple[ValidationResult, bool]:
        isbn = clean_isbn(mapping.value(row, "isbn"))
        if not isbn:
            return (
                ValidationResult(
                    index=index,
                    original=row,
                    outcome=Outcome.lookup_error,
                    error_message=EMPTY_ISBN_MESSAGE,
                ),
                False,
            )

        outcome = await self._lookup(isbn, cancel_event)

        if isinstance(outcome, TransportError):
            logger.warning("lookup failed for row %d (%s): %s", index, isbn, outcome.message)
            return (
                ValidationResult(
                    index=index,
                    original=row,
                    outcome=Outcome.lookup_error,
                    error_message=outcome.message,
                ),
                True,
            )
        if isinstance(outcome, NotFound):
            return (
                ValidationResult(
                    index=index,
                    original=row,
                    outcome=Outcome.not_found,
                    error_message=NOT_FOUND_MESSAGE,
                ),
                False,
            )
        if not isinstance(outcome, Found):
            raise TypeError(f"unexpected lookup outcome: {outcome!r}")

        details = compare_record(row, mapping, isbn, outcome.record)
        return (
            ValidationResult(
                index=index,
                original=row,
                outcome=classify(details),
                remote_record=outcome.record,
                match_details=details,
            ),
            False,
        )

    async def _lookup(self, isbn: str, cancel_event: asyncio.Event | None) -> LookupOutcome:
        lookup = self.client.lookup(isbn)
        if self.lookup_timeout is not None:
            lookup = asyncio.wait_for(lookup, self.lookup_timeout)

        lookup_task = asyncio.ensure_future(lookup)
        waiters: set[asyncio.Future] = {lookup_task}
        cancel_task = None
        if cancel_event is not None:
            cancel_task = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_task)

        try:
            done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in waiters:
                if not task.done():
                    task.cancel()

        if lookup_task not in done:
            # Cancelled mid-lookup; the in-flight result is discarded.
            with contextlib.suppress(asyncio.CancelledError):
                await lookup_task
            raise ValidationCancelled()

        if cancel_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await cancel_task

        try:
            return lookup_task.result()
        except asyncio.TimeoutError:
            # Only our own wait_for deadline is a lookup timeout.
            if self.lookup_timeout is None:
                raise
            return TransportError(f"lookup timed out after {self.lookup_timeout:g}s")
