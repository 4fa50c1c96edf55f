"""Shared builders for engine tests."""

from datetime import date, datetime

from aetherflow.scheduling import ScheduledTaskData

# 2030-01-07 is a Monday; far enough out that it is never "today"
DAY = date(2030, 1, 7)


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


def make_task(task_id: str, name: str = "Task", start=None, end=None, **fields) -> ScheduledTaskData:
    fields.setdefault("scheduled_date", DAY)
    return ScheduledTaskData(id=task_id, name=name, start_time=start, end_time=end, **fields)
