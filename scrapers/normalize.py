# Status, date and discipline normalization for scraped license data
from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Iterable, Optional

from scrapers.models import LicenseStatus

logger = logging.getLogger(__name__)

# Order matters: the first group with a whole-word hit wins. Whole words, not
# substrings, so "Inactive" and "Invalid" never count as active.
_STATUS_GROUPS: list[tuple[LicenseStatus, tuple[str, ...]]] = [
    (LicenseStatus.ACTIVE, ("active", "current", "valid")),
    (LicenseStatus.EXPIRED, ("expired",)),
    (LicenseStatus.INACTIVE, ("inactive", "lapsed")),
    (LicenseStatus.SUSPENDED, ("suspended",)),
    (LicenseStatus.REVOKED, ("revoked", "revocation", "cancelled", "canceled")),
]

_STATUS_PATTERNS = [
    (status, re.compile(r"\b(?:" + "|".join(words) + r")\b", re.IGNORECASE))
    for status, words in _STATUS_GROUPS
]

_MDY_RE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b")
_ISO_RE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
_TEXT_RE = re.compile(r"\b([A-Za-z]{3,9})\.?\s+(\d{1,2}),?\s+(\d{4})\b")

DISCIPLINE_KEYWORDS = (
    r"disciplin\w*",
    r"sanction\w*",
    r"restriction\w*",
    r"probation\w*",
    r"board\s+orders?",
    r"accusations?",
)


def normalize_status(raw: Optional[str]) -> LicenseStatus:
    """Map a free-text status fragment to a canonical status.

    Unrecognized text yields ``LicenseStatus.UNKNOWN``, never an error.
    """
    if not raw:
        return LicenseStatus.UNKNOWN
    for status, pattern in _STATUS_PATTERNS:
        if pattern.search(raw):
            return status
    return LicenseStatus.UNKNOWN


def _candidates(raw: str) -> set[date]:
    found: set[date] = set()

    for m in _MDY_RE.finditer(raw):
        month, day, year = (int(g) for g in m.groups())
        try:
            found.add(date(year, month, day))
        except ValueError:
            continue

    for m in _ISO_RE.finditer(raw):
        year, month, day = (int(g) for g in m.groups())
        try:
            found.add(date(year, month, day))
        except ValueError:
            continue

    for m in _TEXT_RE.finditer(raw):
        text = f"{m.group(1)} {m.group(2)} {m.group(3)}"
        for fmt in ("%B %d %Y", "%b %d %Y"):
            try:
                found.add(datetime.strptime(text, fmt).date())
                break
            except ValueError:
                continue

    return found


def parse_date(raw: Optional[str]) -> Optional[date]:
    """Parse a date fragment scraped from a lookup page.

    Accepts MM/DD/YYYY, YYYY-MM-DD and "Month D, YYYY". Returns None when
    nothing parses or when the fragment holds more than one distinct date:
    callers treat None as "expiration not established", never "no expiration".
    """
    if not raw:
        return None
    found = _candidates(raw.strip())
    if len(found) != 1:
        if len(found) > 1:
            logger.debug(f"Ambiguous date fragment: {raw!r}")
        return None
    return found.pop()


def has_discipline(text: Optional[str], extra: Iterable[str] = ()) -> bool:
    """Conservative encumbrance check over the full page text.

    Over-flagging is acceptable here: a false positive only routes the
    license to a human reviewer.
    """
    if not text:
        return False
    words = list(DISCIPLINE_KEYWORDS) + [re.escape(w) for w in extra]
    pattern = re.compile(r"\b(?:" + "|".join(words) + r")", re.IGNORECASE)
    return bool(pattern.search(text))
