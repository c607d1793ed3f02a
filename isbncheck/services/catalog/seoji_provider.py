from __future__ import annotations

import logging
import re
from typing import Any

import httpx
from isbncheck.services.catalog.types import CatalogProviderError, RemoteRecord

logger = logging.getLogger(__name__)

_author_prefix = re.compile(r"^저자\s*:\s*")


def _doc_to_record(doc: dict[str, Any], searched_isbn: str) -> RemoteRecord:
    author = _author_prefix.sub("", doc.get("AUTHOR") or "").strip()
    return RemoteRecord(
        title=doc.get("TITLE") or "",
        isbn=doc.get("EA_ISBN") or searched_isbn,
        discount=doc.get("PRE_PRICE") or "",
        author=author,
        publisher=doc.get("PUBLISHER") or "",
        pubdate=doc.get("PUBLISH_PREDATE") or doc.get("INPUT_DATE") or "",
        description=doc.get("BOOK_INTRODUCTION") or "",
        # The ISBN service carries no product page or cover image.
        link="",
        image="",
    )


def transform_seoji_response(data: dict[str, Any], searched_isbn: str) -> list[RemoteRecord]:
    docs = data.get("docs") or []
    if not docs or str(data.get("TOTAL_COUNT", "")) == "0":
        return []
    return [_doc_to_record(docs[0], searched_isbn)]


class SeojiProvider:
    """National Library of Korea ISBN (Seoji) search API.

    Only the first document is requested; the validator never looks past it.
    """

    name = "seoji"

    def __init__(
        self,
        *,
        api_url: str,
        cert_key: str | None,
        timeout: float = 15.0,
        user_agent: str = "isbncheck/0.1",
    ):
        self.api_url = api_url
        self.cert_key = cert_key
        self.timeout = timeout
        self.user_agent = user_agent

    async def search_isbn(self, isbn: str) -> list[RemoteRecord]:
        if not self.cert_key:
            raise CatalogProviderError("API credentials are not configured")

        params = {
            "cert_key": self.cert_key,
            "result_style": "json",
            "page_no": "1",
            "page_size": "1",
            "isbn": isbn,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                resp = await client.get(
                    self.api_url, params=params, headers={"User-Agent": self.user_agent}
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning("seoji lookup for %s failed: HTTP %s", isbn, e.response.status_code)
            raise CatalogProviderError(
                f"API response error: {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning("seoji lookup for %s failed: %s", isbn, e)
            raise CatalogProviderError(f"upstream request failed: {e}") from e
        except ValueError as e:
            logger.warning("seoji lookup for %s returned invalid JSON", isbn)
            raise CatalogProviderError("upstream returned invalid JSON") from e

        if not isinstance(data, dict):
            raise CatalogProviderError("upstream returned an unexpected payload")
        return transform_seoji_response(data, isbn)
