from __future__ import annotations

from datetime import date, datetime, time
from typing import Callable

from ..core.exceptions import InvalidInput

Clock = Callable[[], datetime]


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise InvalidInput("Invalid date (YYYY-MM-DD)")


def parse_clock_time(value: str) -> time:
    """Parse HH:MM or HH:MM:SS into time."""
    v = (value or "").strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(v, fmt).time()
        except ValueError:
            continue
    raise InvalidInput("Invalid time (HH:MM)")


def now_local() -> datetime:
    """Current local time.

    Note: Services take a ``clock`` callable defaulting to this so tests can pin time.
    """
    return datetime.now()


def to_epoch_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)
