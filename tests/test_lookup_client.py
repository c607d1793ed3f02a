import httpx
import pytest
import respx
from isbncheck.services.catalog.types import CatalogProviderError, RemoteRecord
from isbncheck.services.lookup import (
    Found,
    HttpLookupClient,
    NotFound,
    ProviderLookupClient,
    TransportError,
)

BASE_URL = "http://lookup.test"
SEARCH_URL = f"{BASE_URL}/api/search"


@pytest.mark.asyncio
async def test_found_uses_first_item():
    with respx.mock:
        route = respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(
                200,
                json={
                    "items": [
                        {"title": "소년이 온다", "isbn": "9788936434120", "discount": 15000},
                        {"title": "second"},
                    ]
                },
            )
        )
        outcome = await HttpLookupClient(BASE_URL).lookup("9788936434120")

    assert route.calls.last.request.url.params["isbn"] == "9788936434120"
    assert isinstance(outcome, Found)
    assert outcome.record.title == "소년이 온다"
    assert outcome.record.discount == "15000"


@pytest.mark.asyncio
async def test_empty_items_is_not_found():
    with respx.mock:
        respx.get(SEARCH_URL).mock(return_value=httpx.Response(200, json={"items": []}))
        outcome = await HttpLookupClient(BASE_URL).lookup("1")
    assert outcome == NotFound()


@pytest.mark.asyncio
async def test_server_error_carries_status():
    with respx.mock:
        respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(500, json={"error": "API credentials are not configured"})
        )
        outcome = await HttpLookupClient(BASE_URL).lookup("1")
    assert outcome == TransportError("API response error: 500: API credentials are not configured")


@pytest.mark.asyncio
async def test_non_json_error_body():
    with respx.mock:
        respx.get(SEARCH_URL).mock(return_value=httpx.Response(502, text="bad gateway"))
        outcome = await HttpLookupClient(BASE_URL).lookup("1")
    assert outcome == TransportError("API response error: 502")


@pytest.mark.asyncio
async def test_error_field_on_success_status():
    with respx.mock:
        respx.get(SEARCH_URL).mock(return_value=httpx.Response(200, json={"error": "quota"}))
        outcome = await HttpLookupClient(BASE_URL).lookup("1")
    assert outcome == TransportError("quota")


@pytest.mark.asyncio
async def test_malformed_json():
    with respx.mock:
        respx.get(SEARCH_URL).mock(return_value=httpx.Response(200, text="<html>"))
        outcome = await HttpLookupClient(BASE_URL).lookup("1")
    assert outcome == TransportError("malformed JSON response")


@pytest.mark.asyncio
async def test_network_failure():
    with respx.mock:
        respx.get(SEARCH_URL).mock(side_effect=httpx.ConnectError("refused"))
        outcome = await HttpLookupClient(BASE_URL).lookup("1")
    assert isinstance(outcome, TransportError)
    assert outcome.message.startswith("network error")


@pytest.mark.asyncio
async def test_timeout():
    with respx.mock:
        respx.get(SEARCH_URL).mock(side_effect=httpx.ReadTimeout("slow"))
        outcome = await HttpLookupClient(BASE_URL, timeout=2).lookup("1")
    assert outcome == TransportError("lookup timed out after 2s")


class _Provider:
    name = "stub"

    def __init__(self, result):
        self.result = result

    async def search_isbn(self, isbn):
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.mark.asyncio
async def test_provider_client_classification():
    record = RemoteRecord(title="T", isbn="1")
    assert await ProviderLookupClient(_Provider([record])).lookup("1") == Found(record)
    assert await ProviderLookupClient(_Provider([])).lookup("1") == NotFound()
    assert await ProviderLookupClient(
        _Provider(CatalogProviderError("API response error: 503"))
    ).lookup("1") == TransportError("API response error: 503")
