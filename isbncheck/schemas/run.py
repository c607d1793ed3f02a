from __future__ import annotations

from datetime import datetime

from isbncheck.services.catalog.types import RemoteRecord
from pydantic import BaseModel


class RunOut(BaseModel):
    id: str
    status: str
    progress: int
    processed: int
    total: int
    counts: dict[str, int]
    notices: list[str]
    error_message: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


class MatchDetailsOut(BaseModel):
    title: bool
    isbn: bool
    price: bool
    author: bool

    class Config:
        from_attributes = True


class ValidationResultOut(BaseModel):
    index: int
    outcome: str
    verdict: str
    original: dict[str, str]
    remote_record: RemoteRecord | None = None
    match_details: MatchDetailsOut | None = None
    error_message: str | None = None
