import re
from datetime import datetime, timedelta, timezone

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS

# "m" is a 30 day month, not minutes.
UNIT_MS = {
    "h": HOUR_MS,
    "d": DAY_MS,
    "w": 7 * DAY_MS,
    "m": 30 * DAY_MS,
}

DEFAULT_RANGE_MS = 30 * DAY_MS

_RANGE_RE = re.compile(r"^\s*(\d{1,12})([hdwm])\s*$")


def parse_time_range(value: str | None) -> int:
    """Duration in milliseconds for a ``<integer><unit>`` range string.

    Missing, malformed and zero-length ranges fall back to 30 days.
    """
    if not value:
        return DEFAULT_RANGE_MS
    match = _RANGE_RE.match(value)
    if not match:
        return DEFAULT_RANGE_MS
    amount = int(match.group(1))
    if amount <= 0:
        return DEFAULT_RANGE_MS
    return amount * UNIT_MS[match.group(2)]


def range_start(value: str | None, now: datetime | None = None) -> datetime:
    """Start of the window; ranges reaching past ``datetime.min`` use the default."""
    now = now or datetime.now(timezone.utc)
    try:
        return now - timedelta(milliseconds=parse_time_range(value))
    except OverflowError:
        return now - timedelta(milliseconds=DEFAULT_RANGE_MS)
