"""
Auto-balance: rebuild a day from its flexible tasks and the sink.

Flexible scheduled rows and unlocked sink rows are pooled, ordered, and packed
into the day's gaps. Whatever does not fit ends up in the sink. The result is a
plan of deletions and insertions for the caller to apply in one transaction.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from ..core.constants import (
    DEFAULT_TASK_DURATION_FOR_ENERGY_CALCULATION, LOW_ENERGY_THRESHOLD,
    SORT_TIME_EARLIEST_TO_LATEST, SORT_TIME_LATEST_TO_EARLIEST, SORT_PRIORITY_HIGH_TO_LOW,
    SORT_PRIORITY_LOW_TO_HIGH, SORT_NAME_ASC, SORT_NAME_DESC, SORT_EMOJI, SOURCE_ALL_FLEXIBLE,
)
from ..core.classification import get_emoji_hue
from ..core.time_block import TimeBlock
from ..core.types import (
    AutoBalancePlan, NewRetiredTask, NewScheduledTask, RetiredTaskData, ScheduledTaskData, TaskEnvironment,
)
from ..core.calculator import resolve_task_window
from ..utils.block_utils import merge_overlapping_blocks
from .compaction import find_slot, task_minutes

logger = logging.getLogger(__name__)

SCHEDULED = "scheduled"
RETIRED = "retired"


class PoolEntry:
    """A candidate for placement, drawn from either the timeline or the sink."""
    def __init__(self, source: str, row, duration: int):
        self.source = source
        self.row = row
        self.duration = duration
        self.break_duration = row.break_duration or 0
        self.created_at = (row.created_at if source == SCHEDULED else row.retired_at) or datetime.min

    @property
    def total(self) -> int:
        return self.duration + self.break_duration

    def __repr__(self):
        return f"PoolEntry({self.source}, {self.row.name}, {self.duration}m)"


def _sort_value(entry: PoolEntry, sort_by: Optional[str]):
    if sort_by == SORT_TIME_EARLIEST_TO_LATEST:
        return entry.duration
    if sort_by == SORT_TIME_LATEST_TO_EARLIEST:
        return -entry.duration
    if sort_by == SORT_PRIORITY_HIGH_TO_LOW:
        return -entry.row.energy_cost
    if sort_by == SORT_PRIORITY_LOW_TO_HIGH:
        return entry.row.energy_cost
    if sort_by == SORT_EMOJI:
        return get_emoji_hue(entry.row.name)
    return entry.created_at


def order_pool(pool: List[PoolEntry], sort_by: Optional[str] = None) -> List[PoolEntry]:
    """Critical first and backburner last, then the requested ordering."""
    if sort_by in (SORT_NAME_ASC, SORT_NAME_DESC):
        ordered = sorted(pool, key=lambda e: e.row.name.lower(), reverse=sort_by == SORT_NAME_DESC)
    else:
        ordered = sorted(pool, key=lambda e: _sort_value(e, sort_by))
    # stable, so the secondary ordering survives
    return sorted(ordered, key=lambda e: (not e.row.is_critical, e.row.is_backburner))


def to_sink(task: ScheduledTaskData, duration: int, selected_day: date) -> NewRetiredTask:
    return NewRetiredTask(
        name=task.name,
        duration=duration,
        break_duration=task.break_duration,
        original_scheduled_date=selected_day,
        is_critical=task.is_critical,
        is_backburner=task.is_backburner,
        energy_cost=task.energy_cost,
        is_custom_energy_cost=task.is_custom_energy_cost,
        task_environment=task.task_environment,
    )


def _keep_fixed(task: ScheduledTaskData) -> NewScheduledTask:
    return NewScheduledTask(**task.model_dump(include=set(NewScheduledTask.model_fields)))


def plan_auto_balance(
    scheduled: Iterable[ScheduledTaskData],
    retired: Iterable[RetiredTaskData],
    selected_day: date,
    workday_start: datetime,
    workday_end: datetime,
    now: datetime,
    energy: int,
    sort_by: Optional[str] = None,
    source: str = SOURCE_ALL_FLEXIBLE,
    environments: Optional[Iterable[TaskEnvironment]] = None,
    extra_occupied_blocks: Optional[Iterable[TimeBlock]] = None,
    tz_name: str = "UTC",
) -> AutoBalancePlan:
    scheduled = [task for task in scheduled if task.scheduled_date == selected_day]
    environments = set(environments or [])
    is_today = selected_day == now.date()
    plan = AutoBalancePlan(selected_date=selected_day)

    def sink_scheduled(task: ScheduledTaskData, duration: int):
        if task.id in plan.scheduled_ids_to_delete:
            return
        plan.scheduled_ids_to_delete.append(task.id)
        plan.tasks_to_keep_in_sink.append(to_sink(task, duration, selected_day))

    fixed = [t for t in scheduled if not t.is_flexible or t.is_locked or t.is_calendar_import]
    fixed_ids = {t.id for t in fixed}
    flexible = [t for t in scheduled if t.id not in fixed_ids]

    for task in fixed:
        if task.is_placed:
            plan.tasks_to_insert.append(_keep_fixed(task))

    # completed flexible rows stay where they are
    for task in [t for t in flexible if t.is_completed and t.is_placed]:
        plan.tasks_to_insert.append(_keep_fixed(task))
    flexible = [t for t in flexible if not t.is_completed]

    if is_today:
        for task in flexible:
            if task.is_placed and resolve_task_window(task, selected_day, tz_name)[0] < now:
                logger.info(f"Task {task.id} ({task.name}) is past due, moving it to the sink")
                sink_scheduled(task, task_minutes(task))
        flexible = [t for t in flexible if t.id not in plan.scheduled_ids_to_delete]

    pool = []
    if source == SOURCE_ALL_FLEXIBLE:
        pool.extend(PoolEntry(SCHEDULED, task, task_minutes(task)) for task in flexible)
    for row in retired:
        if row.is_locked or row.is_completed:
            continue
        pool.append(PoolEntry(RETIRED, row, row.duration or DEFAULT_TASK_DURATION_FOR_ENERGY_CALCULATION))

    if environments:
        pool = [entry for entry in pool if entry.row.task_environment in environments]

    occupied = [
        TimeBlock(*resolve_task_window(task, selected_day, tz_name)[:2])
        for task in scheduled if task.is_placed and (task.id in fixed_ids or task.is_completed)
    ]
    occupied.extend(extra_occupied_blocks or [])
    occupied = merge_overlapping_blocks(occupied)

    cursor = now.replace(second=0, microsecond=0) if is_today and now > workday_start else workday_start
    placed_ids = set()

    for entry in order_pool(pool, sort_by):
        row = entry.row
        if row.is_critical and energy < LOW_ENERGY_THRESHOLD:
            logger.info(f"Energy {energy} too low for critical task {row.name}, not placing it")
            if entry.source == SCHEDULED:
                sink_scheduled(row, entry.duration)
            continue

        start = find_slot(entry.total, occupied, cursor, workday_end)
        if start is None:
            logger.info(f"No room for {entry}, keeping it in the sink")
            if entry.source == SCHEDULED:
                sink_scheduled(row, entry.duration)
            continue

        end = start + timedelta(minutes=entry.total)
        plan.tasks_to_insert.append(NewScheduledTask(
            id=row.id,
            name=row.name,
            start_time=start,
            end_time=end,
            scheduled_date=selected_day,
            break_duration=row.break_duration,
            is_critical=row.is_critical,
            is_backburner=row.is_backburner,
            is_flexible=True,
            is_locked=False,
            energy_cost=row.energy_cost,
            is_custom_energy_cost=row.is_custom_energy_cost,
            task_environment=row.task_environment,
        ))
        if entry.source == SCHEDULED:
            plan.scheduled_ids_to_delete.append(row.id)
        else:
            plan.retired_ids_to_delete.append(row.id)
        placed_ids.add(row.id)
        occupied = merge_overlapping_blocks(occupied + [TimeBlock(start, end)])
        cursor = end

    # flexible rows filtered out of the pool go to the sink too
    for task in flexible:
        if task.id not in placed_ids:
            sink_scheduled(task, task_minutes(task))

    logger.info(
        f"Auto-balance {selected_day}: insert {len(plan.tasks_to_insert)}, "
        f"sink {len(plan.tasks_to_keep_in_sink)}, delete {len(plan.scheduled_ids_to_delete)} scheduled / "
        f"{len(plan.retired_ids_to_delete)} retired"
    )
    return plan
