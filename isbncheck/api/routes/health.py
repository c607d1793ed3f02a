from __future__ import annotations

from fastapi import APIRouter
from isbncheck import __version__
from isbncheck.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {
        "status": "ok",
        "version": __version__,
        "catalog_provider": settings.catalog_provider,
    }
