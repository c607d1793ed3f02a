import asyncio

import pytest
from isbncheck.domain.types import freeze_row
from isbncheck.services.catalog.types import RemoteRecord
from isbncheck.services.lookup import Found, NotFound, TransportError
from isbncheck.services.validation.engine import (
    EMPTY_ISBN_MESSAGE,
    ValidationEngine,
    progress_percent,
)
from isbncheck.services.validation.types import Outcome

ISBN_A = "9788912345671"


def _row(isbn="978-89-123-4567-1", price="15000", author="Kim, Minjun", title="파이썬 데이터 분석 입문"):
    return freeze_row({"도서명": title, "ISBN": isbn, "가격": price, "저자": author})


class BlockingClient:
    """Never answers for the ISBNs in `hang`; other ISBNs are not found."""

    def __init__(self, hang):
        self.hang = set(hang)
        self.calls = []

    async def lookup(self, isbn):
        self.calls.append(isbn)
        if isbn in self.hang:
            await asyncio.Event().wait()
        return NotFound()


@pytest.mark.asyncio
async def test_scenario_a_all_fields_match(mapping, record_a, fake_client_factory):
    client = fake_client_factory({ISBN_A: Found(record_a)})
    report = await ValidationEngine(client).run([_row()], mapping)

    result = report.results[0]
    assert result.outcome is Outcome.valid
    assert result.remote_record == record_a
    assert result.match_details.isbn and result.match_details.price and result.match_details.author
    assert result.match_details.title
    assert client.calls == [ISBN_A]


@pytest.mark.asyncio
async def test_scenario_b_price_mismatch(mapping, record_a, fake_client_factory):
    record = record_a.model_copy(update={"discount": "14000"})
    client = fake_client_factory({ISBN_A: Found(record)})
    report = await ValidationEngine(client).run([_row()], mapping)

    result = report.results[0]
    assert result.outcome is Outcome.mismatch
    assert result.match_details.price is False
    assert result.remote_record is not None


@pytest.mark.asyncio
async def test_title_difference_does_not_affect_outcome(mapping, record_a, fake_client_factory):
    client = fake_client_factory({ISBN_A: Found(record_a)})
    report = await ValidationEngine(client).run([_row(title="전혀 다른 제목")], mapping)

    result = report.results[0]
    assert result.match_details.title is False
    assert result.outcome is Outcome.valid


@pytest.mark.asyncio
async def test_scenario_c_empty_isbn_skips_lookup(mapping, fake_client_factory):
    client = fake_client_factory()
    notices = []
    report = await ValidationEngine(client).run(
        [_row(isbn=" - ")], mapping, on_notice=notices.append
    )

    result = report.results[0]
    assert result.outcome is Outcome.lookup_error
    assert result.error_message == EMPTY_ISBN_MESSAGE
    assert client.calls == []
    assert notices == []


@pytest.mark.asyncio
async def test_scenario_d_not_found(mapping, fake_client_factory):
    report = await ValidationEngine(fake_client_factory()).run([_row()], mapping)

    result = report.results[0]
    assert result.outcome is Outcome.not_found
    assert result.error_message == "no results found"
    assert result.remote_record is None
    assert result.match_details is None


@pytest.mark.asyncio
async def test_scenario_e_transport_error_does_not_stop_the_run(mapping, record_a, fake_client_factory):
    client = fake_client_factory(
        {
            ISBN_A: TransportError("API response error: 500"),
            "9788936434120": Found(record_a),
        }
    )
    notices = []
    rows = [_row(), _row(isbn="9788936434120")]
    report = await ValidationEngine(client).run(rows, mapping, on_notice=notices.append)

    first, second = report.results
    assert first.outcome is Outcome.lookup_error
    assert "500" in first.error_message
    assert first.match_details is None
    assert second.outcome is Outcome.mismatch
    assert [n.index for n in notices] == [0]
    assert report.cancelled is False


@pytest.mark.asyncio
async def test_results_follow_input_order(mapping, fake_client_factory):
    rows = [_row(isbn=str(n)) for n in range(1, 8)]
    seen = []
    report = await ValidationEngine(fake_client_factory()).run(
        rows, mapping, on_result=seen.append
    )

    assert [r.index for r in report.results] == list(range(7))
    assert [r.original for r in report.results] == rows
    assert seen == report.results


@pytest.mark.asyncio
async def test_progress_is_monotonic_and_ends_at_100(mapping, fake_client_factory):
    progress = []
    rows = [_row(isbn=str(n)) for n in range(1, 4)]
    await ValidationEngine(fake_client_factory()).run(
        rows, mapping, on_progress=lambda pct, done, total: progress.append((pct, done, total))
    )

    assert progress == [(33, 1, 3), (67, 2, 3), (100, 3, 3)]


@pytest.mark.asyncio
async def test_empty_input_reports_full_progress(mapping, fake_client_factory):
    progress = []
    report = await ValidationEngine(fake_client_factory()).run(
        [], mapping, on_progress=lambda *args: progress.append(args)
    )
    assert report.results == []
    assert progress == [(100, 0, 0)]


def test_progress_rounds_half_up():
    assert progress_percent(1, 8) == 13
    assert progress_percent(1, 200) == 1
    assert progress_percent(0, 5) == 0
    assert progress_percent(0, 0) == 100


@pytest.mark.asyncio
async def test_unexpected_exception_is_isolated_to_its_row(mapping, fake_client_factory):
    client = fake_client_factory({"1": RuntimeError("boom")})
    notices = []
    report = await ValidationEngine(client).run(
        [_row(isbn="1"), _row(isbn="2")], mapping, on_notice=notices.append
    )

    first, second = report.results
    assert first.outcome is Outcome.lookup_error
    assert first.error_message == "unexpected error: boom"
    assert second.outcome is Outcome.not_found
    assert len(notices) == 1


@pytest.mark.asyncio
async def test_lookup_timeout_becomes_transport_error(mapping):
    client = BlockingClient(hang={"1"})
    report = await ValidationEngine(client, lookup_timeout=0.01).run(
        [_row(isbn="1"), _row(isbn="2")], mapping
    )

    first, second = report.results
    assert first.outcome is Outcome.lookup_error
    assert first.error_message == "lookup timed out after 0.01s"
    assert second.outcome is Outcome.not_found


@pytest.mark.asyncio
async def test_client_timeout_without_engine_deadline_is_isolated(mapping, fake_client_factory):
    client = fake_client_factory({"1": asyncio.TimeoutError("catalog gave up")})
    notices = []
    report = await ValidationEngine(client).run(
        [_row(isbn="1"), _row(isbn="2")], mapping, on_notice=notices.append
    )

    first, second = report.results
    assert first.outcome is Outcome.lookup_error
    assert first.error_message == "unexpected error: catalog gave up"
    assert second.outcome is Outcome.not_found
    assert len(notices) == 1


@pytest.mark.asyncio
async def test_cancel_between_rows(mapping, fake_client_factory):
    cancel = asyncio.Event()
    client = fake_client_factory()
    report = await ValidationEngine(client).run(
        [_row(isbn="1"), _row(isbn="2"), _row(isbn="3")],
        mapping,
        on_result=lambda result: cancel.set(),
        cancel_event=cancel,
    )

    assert report.cancelled is True
    assert len(report.results) == 1
    assert client.calls == ["1"]


@pytest.mark.asyncio
async def test_cancel_interrupts_inflight_lookup(mapping):
    cancel = asyncio.Event()
    client = BlockingClient(hang={"2"})
    task = asyncio.create_task(
        ValidationEngine(client).run(
            [_row(isbn="1"), _row(isbn="2"), _row(isbn="3")], mapping, cancel_event=cancel
        )
    )
    while client.calls != ["1", "2"]:
        await asyncio.sleep(0)
    cancel.set()
    report = await asyncio.wait_for(task, timeout=1)

    assert report.cancelled is True
    assert [r.index for r in report.results] == [0]
    assert client.calls == ["1", "2"]


@pytest.mark.asyncio
async def test_remote_price_missing_compares_as_zero(mapping, fake_client_factory):
    record = RemoteRecord(isbn=ISBN_A, discount="", author="Minjun Kim")
    client = fake_client_factory({ISBN_A: Found(record)})
    report = await ValidationEngine(client).run([_row(price="")], mapping)
    assert report.results[0].match_details.price is True
