"""Market clock helpers.

All timestamps inside FinClash are aware US/Eastern datetimes. SQLite keeps
no tzinfo, so rows hold naive Eastern wall-clock time and are re-localized
on the way out.
"""

from datetime import datetime, timedelta
from typing import Optional

import pytz
from dateutil import parser as date_parser

EASTERN_TZ = pytz.timezone("US/Eastern")


def now_eastern() -> datetime:
    return datetime.now(EASTERN_TZ)


def to_eastern(dt: datetime) -> datetime:
    """Convert to US/Eastern; naive values are taken as Eastern wall-clock time."""
    if dt.tzinfo is None:
        return EASTERN_TZ.localize(dt)
    return dt.astimezone(EASTERN_TZ)


def to_storage(dt: datetime) -> datetime:
    """Naive Eastern datetime for a DateTime column."""
    return to_eastern(dt).replace(tzinfo=None)


def from_storage(dt: Optional[datetime]) -> Optional[datetime]:
    return to_eastern(dt) if dt is not None else None


def parse_market_time(value: str) -> datetime:
    """Parse a date or datetime string; strings without an offset are Eastern."""
    return to_eastern(date_parser.parse(value))


def to_unix_seconds(value: str) -> int:
    """Unix seconds from either a digit string or a date/datetime string."""
    if value.isdigit():
        return int(value)
    return int(parse_market_time(value).timestamp())


def candle_range(
    start: Optional[str],
    end: Optional[str],
    default_days: int,
    now: Optional[datetime] = None,
) -> tuple[int, int]:
    """
    Resolve an optional (start, end) pair into unix seconds.

    Missing ``end`` means now; missing ``start`` means ``default_days``
    before ``end``.
    """
    end_ts = to_unix_seconds(end) if end else int((now or now_eastern()).timestamp())
    if start:
        start_ts = to_unix_seconds(start)
    else:
        start_ts = end_ts - int(timedelta(days=default_days).total_seconds())
    return start_ts, end_ts
