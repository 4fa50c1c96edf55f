"""
Compaction: re-pack flexible, unlocked, incomplete tasks into the earliest free
gaps of the workday, in priority order, around everything that must stay put.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from ..core.exceptions import InvalidTaskError
from ..core.time_block import TimeBlock, minutes_between
from ..core.types import ScheduledTaskData
from ..core.calculator import resolve_task_window
from ..utils.block_utils import merge_overlapping_blocks, free_time_blocks, is_slot_free

logger = logging.getLogger(__name__)


def is_movable(task: ScheduledTaskData) -> bool:
    return task.is_flexible and not task.is_locked and not task.is_completed and not task.is_calendar_import


def has_ended(task: ScheduledTaskData, selected_day: date, now: datetime, tz_name: str = "UTC") -> bool:
    """A placed task on today whose end is at or before now."""
    if selected_day != now.date() or not task.is_placed:
        return False
    return resolve_task_window(task, selected_day, tz_name)[1] <= now


def task_minutes(task: ScheduledTaskData) -> int:
    """
    Length of the task itself, excluding its trailing break.

    A placed flexible row spans task + break, so the break is taken back out.
    Unplaced rows fall back to their intended duration.
    """
    break_minutes = task.break_duration or 0
    if task.is_placed:
        span = minutes_between(task.start_time, task.end_time)
        if span < 0:
            span += 24 * 60
        return max(span - break_minutes, 0) if task.is_flexible else span
    if task.duration:
        return task.duration
    raise InvalidTaskError(task.id, "no start/end time and no duration")


def placement_minutes(task: ScheduledTaskData) -> int:
    return task_minutes(task) + (task.break_duration or 0)


def priority_key(task: ScheduledTaskData):
    """Critical first, backburner last, then longest block first."""
    return (not task.is_critical, task.is_backburner, -placement_minutes(task))


def find_slot(
    total_minutes: int,
    occupied: List[TimeBlock],
    search_start: datetime,
    window_end: datetime,
) -> Optional[datetime]:
    """
    Earliest start at or after search_start where total_minutes fits before window_end.
    The occupied set is the final authority on overlap.
    """
    cursor = search_start
    while cursor < window_end:
        for block in free_time_blocks(occupied, cursor, window_end):
            if block.duration < total_minutes:
                continue
            proposed_end = block.start + timedelta(minutes=total_minutes)
            if is_slot_free(block.start, proposed_end, occupied):
                return block.start

        # jump past the next obstacle and look again
        upcoming = [b for b in occupied if b.start > cursor]
        if not upcoming:
            return None
        cursor = max(cursor, min(upcoming, key=lambda b: b.start).end)
    return None


def compact_schedule(
    tasks: Iterable[ScheduledTaskData],
    selected_day: date,
    workday_start: datetime,
    workday_end: datetime,
    now: datetime,
    extra_occupied_blocks: Optional[Iterable[TimeBlock]] = None,
    tz_name: str = "UTC",
) -> List[ScheduledTaskData]:
    """
    Return the day's fixed tasks unchanged plus every movable task that could be
    placed, with new times. Tasks that do not fit are left out of the result;
    that is an expected outcome, not an error.
    """
    tasks = list(tasks)
    is_today = selected_day == now.date()

    fixed = [task for task in tasks if not is_movable(task)]
    movable = [task for task in tasks if is_movable(task)]

    if is_today:
        for task in movable:
            if has_ended(task, selected_day, now, tz_name):
                logger.debug(f"Task {task.id} ({task.name}) already ended, leaving it for retirement")
        movable = [task for task in movable if not has_ended(task, selected_day, now, tz_name)]

    movable.sort(key=priority_key)

    occupied = [
        TimeBlock(*resolve_task_window(task, selected_day, tz_name)[:2])
        for task in fixed if task.is_placed
    ]
    occupied.extend(extra_occupied_blocks or [])
    occupied = merge_overlapping_blocks(occupied)

    cursor = now.replace(second=0, microsecond=0) if is_today and now > workday_start else workday_start
    placed = []

    for task in movable:
        total = placement_minutes(task)
        start = find_slot(total, occupied, cursor, workday_end)
        if start is None:
            logger.info(f"No room for task {task.id} ({task.name}, {total}m) on {selected_day}")
            continue

        end = start + timedelta(minutes=total)
        placed.append(task.model_copy(update={
            "start_time": start,
            "end_time": end,
            "scheduled_date": selected_day,
        }))
        occupied = merge_overlapping_blocks(occupied + [TimeBlock(start, end)])
        cursor = end

    logger.debug(f"Compacted {selected_day}: {len(placed)}/{len(movable)} placed, {len(fixed)} fixed")
    return fixed + placed
