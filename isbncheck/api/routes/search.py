from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from isbncheck.api.deps import get_catalog_provider
from isbncheck.domain.normalize import clean_isbn
from isbncheck.schemas.search import SearchErrorOut, SearchOut
from isbncheck.services.catalog.provider import CatalogProvider
from isbncheck.services.catalog.types import CatalogProviderError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["search"])


@router.get(
    "/search",
    response_model=SearchOut,
    responses={400: {"model": SearchErrorOut}, 500: {"model": SearchErrorOut}},
)
async def search(
    isbn: str | None = None,
    provider: CatalogProvider = Depends(get_catalog_provider),
):
    """Look an ISBN up in the configured catalog.

    Errors use an `{"error": ...}` body rather than FastAPI's `detail`, which
    is what lookup clients consume.
    """
    wanted = clean_isbn(isbn)
    if not wanted:
        return JSONResponse(status_code=400, content={"error": "isbn parameter is required"})

    try:
        items = await provider.search_isbn(wanted)
    except CatalogProviderError as e:
        logger.warning("catalog search for %s failed: %s", wanted, e)
        return JSONResponse(status_code=500, content={"error": str(e)})

    return SearchOut(items=items)
