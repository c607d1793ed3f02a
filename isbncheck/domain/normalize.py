from __future__ import annotations

import re

_non_digit = re.compile(r"[^0-9]")
_author_noise = re.compile(r"[,\s]")
_pubdate = re.compile(r"(\d{4})(\d{2})(\d{2})")


def clean_isbn(raw: str | None) -> str:
    """Return the digits of an ISBN string.

    Hyphens, spaces and the ISBN-10 "X" check character are all dropped, so
    comparisons are between digit-only projections. No checksum validation.
    """
    if not raw:
        return ""
    return _non_digit.sub("", raw)


def clean_price(raw: str | int | None) -> int:
    """Parse a price by keeping only its digits; unparseable or empty gives 0.

    Currency symbols, thousands separators, signs and decimal points are all
    dropped ("15,000원" -> 15000, "12.50" -> 1250).
    """
    if isinstance(raw, int):
        return raw
    digits = _non_digit.sub("", str(raw or ""))
    return int(digits) if digits else 0


def normalize_author(raw: str | None) -> str:
    return _author_noise.sub("", (raw or "").lower())


def _author_tokens(raw: str) -> str:
    # Same characters as normalize_author, but order-insensitive.
    return "".join(sorted(t for t in _author_noise.split(raw.lower()) if t))


def authors_match(a: str | None, b: str | None) -> bool:
    """Containment match on normalized author strings.

    A single author matches a longer "A, B, C" list through containment of the
    normalized forms. Name order is ignored as a fallback, so "Kim, Minjun"
    matches "Minjun Kim". Either side empty never matches.
    """
    if not a or not b:
        return False
    na = normalize_author(a)
    nb = normalize_author(b)
    if na in nb or nb in na:
        return True
    return _author_tokens(a) == _author_tokens(b)


def titles_match(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    return a in b or b in a


def format_pubdate(raw: str | None) -> str:
    """Render an 8-digit YYYYMMDD date as YYYY-MM-DD; anything else unchanged."""
    if not raw or len(raw) != 8:
        return raw or ""
    return _pubdate.sub(r"\1-\2-\3", raw)
