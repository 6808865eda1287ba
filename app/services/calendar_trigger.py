# file: services/calendar_trigger.py

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from app.config import NOTIFICATION_TIMEZONE

# Feb 29 recurs at most eight years apart (e.g. 2096 -> 2104)
_MAX_YEARS_BETWEEN_MATCHES = 8


def current_time() -> datetime:
    """Wall-clock time in the notification timezone, without tzinfo."""
    return datetime.now(ZoneInfo(NOTIFICATION_TIMEZONE)).replace(tzinfo=None, second=0, microsecond=0)


def trigger_date(year: int, month: int, day: int, hour: int, minute: int) -> datetime:
    """Builds the first firing date. Raises ValueError on impossible components."""
    return datetime(year, month, day, hour, minute)


def next_trigger_date(trigger, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Returns the next date the calendar trigger fires strictly after `now`,
    or None when it has no future occurrence.

    `trigger` is anything carrying year/month/day/hour/minute/repeats
    attributes (an ORM row or a pydantic model). A repeating trigger fires
    on its first date and then every year on the same month/day/time.
    """
    now = now or current_time()
    try:
        first = trigger_date(trigger.year, trigger.month, trigger.day, trigger.hour, trigger.minute)
    except ValueError:
        return None

    if first > now:
        return first
    if not trigger.repeats:
        return None

    for year in range(max(now.year, first.year), now.year + _MAX_YEARS_BETWEEN_MATCHES + 1):
        try:
            candidate = datetime(year, trigger.month, trigger.day, trigger.hour, trigger.minute)
        except ValueError:
            # Feb 29 outside a leap year
            continue
        if candidate > now:
            return candidate
    return None


def has_fired(trigger, now: Optional[datetime] = None) -> bool:
    return next_trigger_date(trigger, now) is None
