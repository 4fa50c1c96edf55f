"""
Wall-clock helpers. The engine works on naive local datetimes; aware timestamps
are converted into the user's timezone before they reach it.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Union
import pytz


def to_wall_clock(value: datetime, tz_name: str = "UTC") -> datetime:
    """Convert a timestamp to naive wall-clock time in tz_name. Naive input is already local."""
    if value.tzinfo is None:
        return value
    return value.astimezone(pytz.timezone(tz_name)).replace(tzinfo=None)


def to_utc(value: datetime, tz_name: str = "UTC") -> datetime:
    """Interpret a naive wall-clock time in tz_name and return it as aware UTC."""
    if value.tzinfo is not None:
        return value.astimezone(pytz.utc)
    return pytz.timezone(tz_name).localize(value).astimezone(pytz.utc)


def local_now(tz_name: str = "UTC", now: Optional[datetime] = None) -> datetime:
    """Current wall-clock time in tz_name. Callers outside the engine supply the clock."""
    current = now or datetime.now(pytz.utc)
    if current.tzinfo is None:
        current = pytz.utc.localize(current)
    return to_wall_clock(current, tz_name)


def parse_time_of_day(value: Union[str, time]) -> time:
    """Accept a datetime.time or an 'HH:MM[:SS]' string."""
    if isinstance(value, time):
        return value
    parts = [int(p) for p in value.strip().split(":")]
    while len(parts) < 3:
        parts.append(0)
    return time(parts[0], parts[1], parts[2])


def set_time_on_date(day: Union[date, datetime], time_of_day: Union[str, time]) -> datetime:
    """Place a time of day on a calendar day, dropping any seconds."""
    if isinstance(day, datetime):
        day = day.date()
    tod = parse_time_of_day(time_of_day)
    return datetime.combine(day, time(tod.hour, tod.minute))


def start_of_day(day: Union[date, datetime]) -> datetime:
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time.min)


def workday_window(day: date, workday_start: Union[str, time], workday_end: Union[str, time]):
    """Workday bounds on day. An end at or before the start rolls into the next day."""
    start = set_time_on_date(day, workday_start)
    end = set_time_on_date(day, workday_end)
    if end <= start:
        end += timedelta(days=1)
    return start, end


def reanchor_to_day(start: datetime, end: datetime, day: date):
    """
    Place a stored wall-clock interval on day.

    Intervals that already start on day or the day after keep their dates, so
    rows placed past midnight by an overnight workday stay after midnight.
    Anything else is moved onto day by its times of day. In both cases an end
    before the start is pushed forward one day.

    Returns (start, end, rolled_over).
    """
    if start.date() in (day, day + timedelta(days=1)):
        new_start, new_end = start, end
    else:
        new_start = set_time_on_date(day, start.time())
        new_end = set_time_on_date(day, end.time())
    rolled_over = False
    if new_end < new_start:
        new_end = set_time_on_date(new_start, new_end.time()) + timedelta(days=1)
        rolled_over = True
    return new_start, new_end, rolled_over
