"""
Schedule calculator: resolves a day's persisted tasks, meals and an active regen
pod into an ordered, display-ready timeline with summary totals.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from .constants import (
    TASK, BREAK, MEAL, TIME_OFF, CALENDAR_EVENT, MEAL_ENERGY_GAIN, MIDNIGHT_ROLLOVER_MESSAGE,
    REGEN_POD_ID, REGEN_POD_NAME, REGEN_POD_EMOJI,
)
from .classification import classify_item_type, assign_emoji, get_break_description
from .time_block import TimeBlock, minutes_between
from .types import (
    FormattedSchedule, MealTime, RegenPod, ScheduledItem, ScheduledTaskData, ScheduleSummary,
    TaskEnvironment,
)
from ..utils.block_utils import merge_overlapping_blocks, free_time_blocks, total_minutes
from ..utils.time_utils import set_time_on_date, start_of_day, to_wall_clock, reanchor_to_day

logger = logging.getLogger(__name__)

ACTIVE_TYPES = (TASK, CALENDAR_EVENT)
RESTING_TYPES = (BREAK, MEAL, TIME_OFF)


# ================================
# SYNTHESIZED ITEMS
# ================================

def build_meal_items(
    selected_day: date,
    workday_start: datetime,
    workday_end: datetime,
    meal_times: Optional[Iterable[MealTime]] = None,
) -> List[ScheduledItem]:
    """Meal items for the day, clipped to the workday. Meals entirely outside it are dropped."""
    items = []
    for meal in meal_times or []:
        if meal.duration <= 0:
            continue
        meal_start = set_time_on_date(selected_day, meal.start)
        meal_end = meal_start + timedelta(minutes=meal.duration)

        start = max(meal_start, workday_start)
        end = min(meal_end, workday_end)
        duration = minutes_between(start, end)
        if duration <= 0:
            logger.debug(f"{meal.name} falls outside the workday on {selected_day}, skipping")
            continue

        items.append(ScheduledItem(
            id=f"meal-{meal.name.lower()}-{start.strftime('%H%M')}",
            name=meal.name,
            type=MEAL,
            emoji=meal.emoji or assign_emoji(meal.name),
            start_time=start,
            end_time=end,
            duration=duration,
            description=f"{meal.name} time",
            is_locked=True,
            energy_cost=MEAL_ENERGY_GAIN,
            task_environment=TaskEnvironment.HOME,
        ))
    return items


def build_regen_pod_item(selected_day: date, now: datetime, regen_pod: Optional[RegenPod] = None) -> Optional[ScheduledItem]:
    """The active pod as a locked pseudo-task, unless it belongs to another day or has finished."""
    if regen_pod is None or regen_pod.duration <= 0:
        return None
    pod_start = regen_pod.start_time
    if pod_start.date() != selected_day:
        return None
    pod_end = pod_start + timedelta(minutes=regen_pod.duration)
    if pod_end < now:
        return None

    return ScheduledItem(
        id=REGEN_POD_ID,
        name=REGEN_POD_NAME,
        type=BREAK,
        emoji=REGEN_POD_EMOJI,
        start_time=pod_start,
        end_time=pod_end,
        duration=regen_pod.duration,
        description=get_break_description(regen_pod.duration),
        is_locked=True,
        task_environment=TaskEnvironment.AWAY,
    )


def synthesized_blocks(
    selected_day: date,
    workday_start: datetime,
    workday_end: datetime,
    now: datetime,
    regen_pod: Optional[RegenPod] = None,
    meal_times: Optional[Iterable[MealTime]] = None,
) -> List[TimeBlock]:
    """Occupied blocks for meals and an active pod, for planners that must avoid them."""
    items = build_meal_items(selected_day, workday_start, workday_end, meal_times)
    pod = build_regen_pod_item(selected_day, now, regen_pod)
    if pod is not None:
        items.append(pod)
    return [TimeBlock(item.start_time, item.end_time) for item in items]


# ================================
# TASK RESOLUTION
# ================================

def resolve_task_window(task: ScheduledTaskData, selected_day: date, tz_name: str = "UTC") -> Tuple[datetime, datetime, bool]:
    """
    Wall-clock [start, end) of a placed task re-anchored onto selected_day.
    The third element reports a midnight rollover.
    """
    start = to_wall_clock(task.start_time, tz_name)
    end = to_wall_clock(task.end_time, tz_name)
    return reanchor_to_day(start, end, selected_day)


def task_to_item(task: ScheduledTaskData, start: datetime, end: datetime) -> ScheduledItem:
    item_type = classify_item_type(task.name, task.source_calendar_id)
    duration = minutes_between(start, end)

    description = None
    if item_type == BREAK:
        description = get_break_description(duration)
    elif item_type == CALENDAR_EVENT:
        description = "External Calendar Event"

    return ScheduledItem(
        id=task.id,
        name=task.name,
        type=item_type,
        emoji=assign_emoji(task.name),
        start_time=start,
        end_time=end,
        duration=duration,
        break_duration=task.break_duration,
        description=description,
        is_critical=task.is_critical,
        is_backburner=task.is_backburner,
        is_flexible=task.is_flexible,
        is_locked=task.is_locked,
        is_completed=task.is_completed,
        energy_cost=task.energy_cost,
        task_environment=task.task_environment,
        source_calendar_id=task.source_calendar_id,
    )


def _is_fixed_type(task: ScheduledTaskData, item_type: str) -> bool:
    return not task.is_flexible or item_type in (CALENDAR_EVENT, TIME_OFF)


# ================================
# CALCULATION
# ================================

def calculate_schedule(
    tasks: Iterable[ScheduledTaskData],
    selected_day: date,
    workday_start: datetime,
    workday_end: datetime,
    now: datetime,
    regen_pod: Optional[RegenPod] = None,
    meal_times: Optional[Iterable[MealTime]] = None,
    tz_name: str = "UTC",
) -> FormattedSchedule:
    """
    Produce the display timeline for selected_day.

    Rows without both timestamps are counted as unscheduled and skipped. A completed
    flexible task leaves the timeline; a completed fixed task stays so it can be
    shown struck through.
    """
    summary = ScheduleSummary()
    items = build_meal_items(selected_day, workday_start, workday_end, meal_times)

    pod = build_regen_pod_item(selected_day, now, regen_pod)
    if pod is not None:
        items.append(pod)

    for task in tasks:
        if task.scheduled_date != selected_day:
            continue
        if not task.is_placed:
            summary.unscheduled_count += 1
            logger.warning(f"Task {task.id} ({task.name}) has no start/end time, skipping")
            continue

        start, end, rolled_over = resolve_task_window(task, selected_day, tz_name)
        if end <= start:
            logger.warning(f"Task {task.id} ({task.name}) has an empty time range, skipping")
            continue
        if rolled_over:
            summary.extends_past_midnight = True

        item = task_to_item(task, start, end)
        if task.is_completed and not _is_fixed_type(task, item.type):
            continue
        items.append(item)
        summary.total_energy_cost += task.energy_cost

    items.sort(key=lambda item: (item.start_time, item.end_time))

    for item in items:
        if item.type in ACTIVE_TYPES:
            summary.active_minutes += item.duration
            if item.is_critical and not item.is_completed and item.end_time > now:
                summary.critical_tasks_remaining += 1
        elif item.type in RESTING_TYPES:
            summary.break_minutes += item.duration

    summary.total_tasks = len(items)

    next_midnight = start_of_day(selected_day) + timedelta(days=1)
    if items and max(item.end_time for item in items) > next_midnight:
        summary.extends_past_midnight = True
    if summary.extends_past_midnight:
        summary.midnight_rollover_message = MIDNIGHT_ROLLOVER_MESSAGE.format(weekday=next_midnight.strftime("%A"))

    return FormattedSchedule(items=items, summary=summary)


def schedule_free_blocks(schedule: FormattedSchedule, workday_start: datetime, workday_end: datetime) -> List[TimeBlock]:
    """Gaps in the workday not covered by any item, the targets for injection."""
    occupied = [TimeBlock(item.start_time, item.end_time) for item in schedule.items]
    return free_time_blocks(merge_overlapping_blocks(occupied), workday_start, workday_end)


def free_minutes(schedule: FormattedSchedule, workday_start: datetime, workday_end: datetime) -> int:
    return total_minutes(schedule_free_blocks(schedule, workday_start, workday_end))
