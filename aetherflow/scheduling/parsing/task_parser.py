"""
Free-text parsers for the scheduler input box: quick-add tasks, inject
commands, scheduler commands and sink quick-add.

Every parser returns None when the text matches no grammar rule; callers treat
that as a no-op and tell the user.
"""

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, Union
from dateutil import parser as date_parser

from ..core.constants import (
    DEFAULT_BREAK_MINUTES, DEFAULT_TASK_DURATION_FOR_ENERGY_CALCULATION, DEFAULT_SINK_ENVIRONMENT,
)
from ..core.types import (
    DurationTask, FixedTimeTask, TimeOffTask, ParsedInjection, SchedulerCommand, NewRetiredTask,
    TaskEnvironment,
)
from ..scoring.energy_scoring import energy_cost, is_meal

logger = logging.getLogger(__name__)

TIME_PATTERN = r"\d{1,2}(?::\d{2})?\s*(?:am|pm)?"

TIME_OFF_RE = re.compile(rf"^time off\s+({TIME_PATTERN})\s*-\s*({TIME_PATTERN})$", re.IGNORECASE)
TIME_RANGE_RE = re.compile(rf"^(.*?)\s+({TIME_PATTERN})\s*-\s*({TIME_PATTERN})$", re.IGNORECASE)
DURATION_RE = re.compile(r"^(.*?)\s+(\d+)(?:\s+(\d+))?$")
INJECT_RE = re.compile(
    rf'^inject\s+"([^"]+)"'
    # a number that opens a time range is a start time, not a duration
    r"(?:\s+(\d+)(?![\d:]|\s*(?:am|pm)|\s*-\s*\d))?"
    rf"(?:\s+({TIME_PATTERN}))?"
    rf"(?:\s*-\s*({TIME_PATTERN}))?"
    r"(?:\s+break\s+(\d+)(?:m|min)?)?"
    r"(?:\s+(!))?"
    r"(?:\s+(-))?"
    r"(?:\s+(sink))?"
    r"(?:\s+(fixed))?$",
    re.IGNORECASE,
)
RANGE_BASE_DATE = date(2000, 1, 1)
BARE_HOUR_RE = re.compile(r"^(\d{1,2})$")
CLOCK_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)?$")
SINK_DURATION_RE = re.compile(r"^(.*?)\s+(\d+)$")
BREAK_COMMAND_RE = re.compile(r"^break(?:\s+(\d+))?$")

CRITICAL_SUFFIX = " !"
BACKBURNER_PREFIX = "-"
SINK_SUFFIX = " sink"
FIXED_SUFFIX = " fixed"


# ================================
# TIME STRINGS
# ================================

def parse_flexible_time(time_string: str, base_date: Union[date, datetime]) -> Optional[datetime]:
    """
    Resolve a loose time of day ("9am", "9:30 pm", "13:00", "14") onto base_date.
    Returns None when the string is not a time.
    """
    text = time_string.strip().lower()
    if isinstance(base_date, datetime):
        base_date = base_date.date()
    midnight = datetime.combine(base_date, time.min)

    hour_match = BARE_HOUR_RE.match(text)
    if hour_match:
        hour = int(hour_match.group(1))
        if 0 <= hour <= 23:
            return midnight.replace(hour=hour)
        logger.warning(f"Hour out of range in time string {time_string!r}")
        return None

    if not CLOCK_RE.match(text):
        logger.warning(f"Failed to parse time string {time_string!r}")
        return None

    try:
        parsed = date_parser.parse(text, default=midnight)
    except (ValueError, OverflowError):
        logger.warning(f"Failed to parse time string {time_string!r}")
        return None
    return parsed.replace(second=0, microsecond=0)


def resolve_time_range(start_string: str, end_string: str, day: date) -> Optional[Tuple[datetime, datetime]]:
    """Both ends on day; an end before the start belongs to the next day."""
    start = parse_flexible_time(start_string, day)
    end = parse_flexible_time(end_string, day)
    if start is None or end is None:
        return None
    if end < start:
        end += timedelta(days=1)
    if end == start:
        return None
    return start, end


def _minutes(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


# ================================
# QUICK ADD
# ================================

def _strip_flags(raw: str):
    """Strip marker flags in a fixed order: critical, backburner, sink, fixed, then critical/backburner again."""
    text = raw.strip()
    is_critical = is_backburner = should_sink = False
    is_flexible = True

    if text.endswith(CRITICAL_SUFFIX):
        is_critical = True
        text = text[:-len(CRITICAL_SUFFIX)].strip()
    if text.startswith(BACKBURNER_PREFIX):
        is_backburner = True
        text = text[len(BACKBURNER_PREFIX):].strip()
    if text.lower().endswith(SINK_SUFFIX):
        should_sink = True
        text = text[:-len(SINK_SUFFIX)].strip()
    if text.lower().endswith(FIXED_SUFFIX):
        is_flexible = False
        text = text[:-len(FIXED_SUFFIX)].strip()
    # flags may sit inside the sink/fixed suffixes
    if text.endswith(CRITICAL_SUFFIX):
        is_critical = True
        text = text[:-len(CRITICAL_SUFFIX)].strip()
    if text.startswith(BACKBURNER_PREFIX):
        is_backburner = True
        text = text[len(BACKBURNER_PREFIX):].strip()

    return text, is_critical, is_backburner, should_sink, is_flexible


def parse_quick_add_input(raw: str, selected_day: date) -> Optional[Union[DurationTask, FixedTimeTask, TimeOffTask]]:
    """
    Parse quick-add text such as "Write report 60 !", "Email 9am - 9:30am" or
    "time off 1pm - 2pm" into a draft task for selected_day.
    """
    text, is_critical, is_backburner, should_sink, is_flexible = _strip_flags(raw)
    if not text:
        return None

    time_off = TIME_OFF_RE.match(text)
    if time_off:
        window = resolve_time_range(time_off.group(1), time_off.group(2), selected_day)
        if window is None:
            return None
        return TimeOffTask(start_time=window[0], end_time=window[1])

    timed = TIME_RANGE_RE.match(text)
    if timed:
        name = timed.group(1).strip()
        window = resolve_time_range(timed.group(2), timed.group(3), selected_day)
        if name and window is not None:
            start, end = window
            return FixedTimeTask(
                name=name,
                start_time=start,
                end_time=end,
                is_critical=is_critical,
                is_backburner=is_backburner,
                should_sink=should_sink,
                energy_cost=energy_cost(_minutes(start, end), is_critical, is_backburner, meal=is_meal(name)),
            )

    sized = DURATION_RE.match(text)
    if sized:
        name = sized.group(1).strip()
        duration = int(sized.group(2))
        break_duration = int(sized.group(3)) if sized.group(3) else None
        if name and duration > 0:
            return DurationTask(
                name=name,
                duration=duration,
                break_duration=break_duration,
                is_critical=is_critical,
                is_backburner=is_backburner,
                is_flexible=is_flexible,
                should_sink=should_sink,
                energy_cost=energy_cost(duration, is_critical, is_backburner, meal=is_meal(name)),
            )

    return None


# ================================
# INJECT / COMMANDS / SINK
# ================================

def _range_minutes(start_string: str, end_string: str) -> Optional[int]:
    window = resolve_time_range(start_string, end_string, RANGE_BASE_DATE)
    return _minutes(*window) if window else None


def parse_injection_command(raw: str) -> Optional[ParsedInjection]:
    """Parse 'inject "Task Name" [duration] [start] [- end] [break N] [!] [-] [sink] [fixed]'."""
    match = INJECT_RE.match(raw.strip())
    if not match:
        return None

    task_name = match.group(1).strip()
    duration = int(match.group(2)) if match.group(2) else None
    start_time = match.group(3).strip() if match.group(3) else None
    end_time = match.group(4).strip() if match.group(4) else None
    break_duration = int(match.group(5)) if match.group(5) else None
    is_critical = bool(match.group(6))
    is_backburner = bool(match.group(7))

    if is_meal(task_name):
        cost = energy_cost(0, meal=True)
    else:
        minutes = duration
        if minutes is None and start_time and end_time:
            minutes = _range_minutes(start_time, end_time)
        cost = energy_cost(minutes or DEFAULT_TASK_DURATION_FOR_ENERGY_CALCULATION, is_critical, is_backburner)

    return ParsedInjection(
        task_name=task_name,
        duration=duration,
        start_time=start_time,
        end_time=end_time,
        break_duration=break_duration,
        is_critical=is_critical,
        is_backburner=is_backburner,
        is_flexible=not match.group(9),
        should_sink=bool(match.group(8)),
        energy_cost=cost,
    )


def parse_command(raw: str) -> Optional[SchedulerCommand]:
    text = " ".join(raw.strip().lower().split())

    if text in ("clear", "show", "reorder", "compact"):
        return SchedulerCommand(type=text)
    if text == "time off":
        return SchedulerCommand(type="timeoff")
    if text in ("aether dump", "reset schedule"):
        return SchedulerCommand(type="aether dump")
    if text == "aether dump mega":
        return SchedulerCommand(type="aether dump mega")

    if text == "remove":
        return SchedulerCommand(type="remove")
    if text.startswith("remove "):
        parts = text.split(" ")
        if parts[1] == "index":
            if len(parts) == 3 and parts[2].isdigit():
                return SchedulerCommand(type="remove", index=int(parts[2]) - 1)
            return None
        return SchedulerCommand(type="remove", target=" ".join(parts[1:]))

    brk = BREAK_COMMAND_RE.match(text)
    if brk:
        duration = int(brk.group(1)) if brk.group(1) else DEFAULT_BREAK_MINUTES
        return SchedulerCommand(type="break", duration=duration if duration > 0 else DEFAULT_BREAK_MINUTES)

    return None


def parse_sink_task_input(raw: str, today: date) -> Optional[NewRetiredTask]:
    name = raw.strip()
    is_critical = is_backburner = False
    duration = None

    if name.endswith(CRITICAL_SUFFIX):
        is_critical = True
        name = name[:-len(CRITICAL_SUFFIX)].strip()
    if name.startswith(BACKBURNER_PREFIX):
        is_backburner = True
        name = name[len(BACKBURNER_PREFIX):].strip()

    sized = SINK_DURATION_RE.match(name)
    if sized:
        name = sized.group(1).strip()
        duration = int(sized.group(2))

    if not name:
        return None

    cost = energy_cost(
        duration or DEFAULT_TASK_DURATION_FOR_ENERGY_CALCULATION,
        is_critical, is_backburner, meal=is_meal(name),
    )
    return NewRetiredTask(
        name=name,
        duration=duration,
        original_scheduled_date=today,
        is_critical=is_critical,
        is_backburner=is_backburner,
        energy_cost=cost,
        task_environment=TaskEnvironment(DEFAULT_SINK_ENVIRONMENT),
    )
