from __future__ import annotations

from functools import lru_cache

from isbncheck.core.config import settings
from isbncheck.services.catalog.fixture_provider import FixtureProvider
from isbncheck.services.catalog.provider import CatalogProvider
from isbncheck.services.catalog.seoji_provider import SeojiProvider


@lru_cache
def get_provider() -> CatalogProvider:
    if settings.catalog_provider == "fixture":
        return FixtureProvider(fixture_path=settings.fixture_catalog_path)
    if settings.catalog_provider == "seoji":
        return SeojiProvider(
            api_url=settings.seoji_api_url,
            cert_key=settings.seoji_cert_key,
            timeout=settings.lookup_timeout_secs,
            user_agent=settings.user_agent,
        )
    raise ValueError(f"Unknown catalog provider: {settings.catalog_provider}")
