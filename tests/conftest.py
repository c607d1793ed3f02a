from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from isbncheck.api.deps import get_catalog_provider, get_registry
from isbncheck.core.config import DEFAULT_FIXTURE_CATALOG_PATH
from isbncheck.domain.types import ColumnMapping
from isbncheck.main import app
from isbncheck.services.catalog.fixture_provider import FixtureProvider
from isbncheck.services.catalog.types import RemoteRecord
from isbncheck.services.lookup import NotFound
from isbncheck.services.session import SessionRegistry

BOOKS_CSV = (
    "도서명,ISBN,가격,저자,비고\n"
    "파이썬 데이터 분석 입문,978-89-123-4567-1,\"15,000\",\"Kim, Minjun\",first\n"
    "소년이 온다,9788936434120,14000,한강,second\n"
    "없는 책,9790000000000,10000,누군가,third\n"
    "ISBN 없는 책,,12000,아무개,fourth\n"
)


class FakeLookupClient:
    """In-memory lookup client: ISBN -> outcome, with a call log."""

    def __init__(self, outcomes=None, default=None):
        self.outcomes = dict(outcomes or {})
        self.default = default if default is not None else NotFound()
        self.calls: list[str] = []

    async def lookup(self, isbn):
        self.calls.append(isbn)
        outcome = self.outcomes.get(isbn, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture()
def mapping() -> ColumnMapping:
    return ColumnMapping(title="도서명", isbn="ISBN", price="가격", author="저자")


@pytest.fixture()
def record_a() -> RemoteRecord:
    return RemoteRecord(
        title="파이썬 데이터 분석 입문",
        isbn="9788912345671",
        discount="15000",
        author="Minjun Kim",
        publisher="한빛출판",
        pubdate="20230315",
    )


@pytest.fixture()
def fake_client_factory():
    return FakeLookupClient


@pytest.fixture()
def fixture_provider() -> FixtureProvider:
    return FixtureProvider(str(DEFAULT_FIXTURE_CATALOG_PATH))


@pytest.fixture()
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture()
def client(registry, fixture_provider):
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_catalog_provider] = lambda: fixture_provider
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def books_csv_bytes() -> bytes:
    return BOOKS_CSV.encode("utf-8")
