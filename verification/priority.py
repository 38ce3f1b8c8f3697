# Manual task priority and due dates
from __future__ import annotations

from datetime import date, timedelta
from typing import Optional, Union

MAX_PRIORITY = 10

# (days-to-expiration upper bound, points); only the first band that applies counts
EXPIRATION_BANDS = ((30, 5), (60, 3), (90, 1))

STATUS_POINTS = {
    "flagged": 5,
    "needs_manual": 3,
}


def _as_date(value: Union[date, str, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def days_until_expiration(
    expiration: Union[date, str, None], today: Optional[date] = None
) -> Optional[int]:
    """Whole days from today until expiration; negative once expired."""
    exp = _as_date(expiration)
    if exp is None:
        return None
    return (exp - (today or date.today())).days


def calculate_priority(
    expiration: Union[date, str, None],
    status: Optional[str],
    today: Optional[date] = None,
) -> int:
    """0-10 score for a manual review task.

    Sooner expiration and a flagged/needs-manual status both push the task
    up the queue. Already-expired licenses fall in the most urgent band.
    """
    priority = 0

    days = days_until_expiration(expiration, today)
    if days is not None:
        for bound, points in EXPIRATION_BANDS:
            if days < bound:
                priority += points
                break

    priority += STATUS_POINTS.get((status or "").lower(), 0)
    return min(priority, MAX_PRIORITY)


def is_urgent(expiration: Union[date, str, None], today: Optional[date] = None) -> bool:
    """Inside the most urgent expiration band."""
    days = days_until_expiration(expiration, today)
    return days is not None and days < EXPIRATION_BANDS[0][0]


def calculate_due_date(days: int = 14, today: Optional[date] = None) -> date:
    """Manual tasks are due a fixed number of days out, whatever their priority."""
    return (today or date.today()) + timedelta(days=days)


def source_type_for(credential_type: str) -> str:
    """Which kind of verification source covers a credential."""
    return "cna_registry" if (credential_type or "").upper() == "CNA" else "bon"
