from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Union

import httpx
from isbncheck.services.catalog.provider import CatalogProvider
from isbncheck.services.catalog.types import CatalogProviderError, RemoteRecord
from pydantic import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Found:
    record: RemoteRecord


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class TransportError:
    message: str


LookupOutcome = Union[Found, NotFound, TransportError]


class LookupClient(Protocol):
    async def lookup(self, isbn: str) -> LookupOutcome: ...


class ProviderLookupClient:
    """Looks ISBNs up by calling a catalog provider in-process."""

    def __init__(self, provider: CatalogProvider):
        self.provider = provider

    async def lookup(self, isbn: str) -> LookupOutcome:
        try:
            records = await self.provider.search_isbn(isbn)
        except CatalogProviderError as e:
            return TransportError(str(e))
        if not records:
            return NotFound()
        return Found(records[0])


class HttpLookupClient:
    """Client for the `GET /api/search?isbn=` contract.

    One attempt per call, no retries. Every failure mode (status, network,
    timeout, malformed body, application `error` field) comes back as a
    TransportError rather than an exception.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.search_url = f"{base_url.rstrip('/')}/api/search"
        self.timeout = timeout
        self._client = client

    async def lookup(self, isbn: str) -> LookupOutcome:
        try:
            if self._client is not None:
                resp = await self._client.get(
                    self.search_url, params={"isbn": isbn}, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.get(self.search_url, params={"isbn": isbn})
        except httpx.TimeoutException:
            return TransportError(f"lookup timed out after {self.timeout:g}s")
        except httpx.HTTPError as e:
            logger.warning("lookup request for %s failed: %s", isbn, e)
            return TransportError(f"network error: {e}")

        return self._classify(resp)

    @staticmethod
    def _classify(resp: httpx.Response) -> LookupOutcome:
        try:
            body = resp.json()
        except ValueError:
            body = None

        if not resp.is_success:
            detail = body.get("error") if isinstance(body, dict) else None
            message = f"API response error: {resp.status_code}"
            if detail:
                message = f"{message}: {detail}"
            return TransportError(message)

        if not isinstance(body, dict):
            return TransportError("malformed JSON response")
        if body.get("error"):
            return TransportError(str(body["error"]))

        items = body.get("items") or []
        if not isinstance(items, list):
            return TransportError("malformed JSON response")
        if not items:
            return NotFound()
        try:
            return Found(RemoteRecord.model_validate(items[0]))
        except ValidationError:
            return TransportError("malformed record in response")
