from __future__ import annotations

from typing import Any

from pydantic import BaseModel, field_validator


class CatalogProviderError(Exception):
    """The upstream bibliographic service could not answer."""


class RemoteRecord(BaseModel):
    """One bibliographic record as served by `/api/search`.

    `discount` is the wire name for the list price the upstream reports.
    """

    title: str = ""
    isbn: str = ""
    discount: str = ""
    author: str = ""
    publisher: str = ""
    pubdate: str = ""
    link: str = ""
    image: str = ""
    description: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, (int, float)):
            return str(v)
        return v
