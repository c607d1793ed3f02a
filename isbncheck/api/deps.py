from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, HTTPException
from isbncheck.core.config import settings
from isbncheck.services.catalog.factory import get_provider
from isbncheck.services.catalog.provider import CatalogProvider
from isbncheck.services.lookup import LookupClient, ProviderLookupClient
from isbncheck.services.session import SessionRegistry, ValidationSession
from isbncheck.services.validation.engine import ValidationEngine


@lru_cache
def get_registry() -> SessionRegistry:
    return SessionRegistry()


def get_catalog_provider() -> CatalogProvider:
    try:
        return get_provider()
    except (FileNotFoundError, ValueError) as e:
        raise HTTPException(status_code=500, detail=str(e))


def get_lookup_client(
    provider: CatalogProvider = Depends(get_catalog_provider),
) -> LookupClient:
    # The engine talks to the catalog in-process rather than looping back
    # through /api/search over HTTP.
    return ProviderLookupClient(provider)


def get_engine(client: LookupClient = Depends(get_lookup_client)) -> ValidationEngine:
    return ValidationEngine(client, lookup_timeout=settings.lookup_timeout_secs)


def get_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> ValidationSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session
