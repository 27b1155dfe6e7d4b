"""Normalisation helpers for equipment fields.

Category and location values are typed by hand in different shapes
("laptops", "  LAPTOPS ", "Laptops"). Storing one canonical spelling keeps the
category/location pickers free of near-duplicates and makes audit diffs
compare like with like.
"""

from __future__ import annotations

import re
from datetime import date

__all__ = ["normalize_label", "clean_text", "parse_date_added", "DATE_FORMAT_HINT"]

DATE_FORMAT_HINT = "YYYY-MM-DD"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def clean_text(raw: str | None) -> str:
    """Trim surrounding whitespace; ``None`` becomes an empty string."""

    if raw is None:
        return ""
    return raw.strip()


def normalize_label(raw: str | None) -> str:
    """Return ``raw`` trimmed, with a leading capital and the rest lowercase.

    ``"  lAPTOP  "`` -> ``"Laptop"``, ``"office 101"`` -> ``"Office 101"``.
    """

    cleaned = clean_text(raw)
    if not cleaned:
        return ""
    return cleaned[:1].upper() + cleaned[1:].lower()


def parse_date_added(raw: str) -> str:
    """Validate a date-only string and return it unchanged.

    The value is checked for shape and calendar correctness with a plain
    ``date`` (no time, no timezone), so the stored text is always exactly
    what the caller sent.
    """

    if not _DATE_RE.match(raw):
        raise ValueError(f"dateAdded must use the {DATE_FORMAT_HINT} format")
    year, month, day = (int(part) for part in raw.split("-"))
    try:
        date(year, month, day)
    except ValueError as exc:
        raise ValueError("dateAdded is not a valid calendar date (month or day out of range)") from exc
    return raw
