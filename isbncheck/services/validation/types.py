from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from isbncheck.domain.types import RawRow
from isbncheck.services.catalog.types import RemoteRecord


class Outcome(str, Enum):
    valid = "valid"
    mismatch = "mismatch"
    not_found = "not_found"
    lookup_error = "lookup_error"

    @property
    def rank(self) -> int:
        return _RANK[self]

    @property
    def verdict_label(self) -> str:
        # The export only distinguishes match / no match.
        return "일치" if self is Outcome.valid else "불일치"


_RANK: dict[Outcome, int] = {
    Outcome.valid: 4,
    Outcome.mismatch: 3,
    Outcome.not_found: 2,
    Outcome.lookup_error: 1,
}


@dataclass(frozen=True)
class MatchDetails:
    title: bool
    isbn: bool
    price: bool
    author: bool

    @property
    def gate(self) -> bool:
        # Title is informational; formatting differences make it unreliable.
        return self.isbn and self.price and self.author


@dataclass(frozen=True)
class ValidationResult:
    index: int
    original: RawRow
    outcome: Outcome
    remote_record: RemoteRecord | None = None
    match_details: MatchDetails | None = None
    error_message: str | None = None
