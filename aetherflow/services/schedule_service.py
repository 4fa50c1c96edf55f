"""
Schedule service: loads a profile's rows, runs the scheduling engine on an
in-memory snapshot and writes the results back in a single transaction.
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from ..config import DEFAULT_TIMEZONE
from ..leveling import award_completion, apply_pod_exit
from ..models import Profile, ScheduledTask, RetiredTask
from ..schemas import ScheduleOut, FreeBlockOut, CompactionOut, CommandOut, AutoBalanceOut, CompletionOut
from ..scheduling import (
    ScheduledTaskData, RetiredTaskData, NewScheduledTask, NewRetiredTask, MealTime, RegenPod,
    DurationTask, FixedTimeTask, TimeOffTask, SchedulerCommand, TimeBlock,
    calculate_schedule, schedule_free_blocks, synthesized_blocks, compact_schedule, plan_auto_balance,
    parse_quick_add_input, parse_injection_command, parse_command, parse_sink_task_input,
)
from ..scheduling.algorithms.compaction import find_slot, has_ended, is_movable, task_minutes
from ..scheduling.core.constants import MEAL_SLOTS, DEFAULT_TASK_DURATION_FOR_ENERGY_CALCULATION
from ..scheduling.core.time_block import minutes_between
from ..scheduling.parsing.task_parser import resolve_time_range, parse_flexible_time
from ..scheduling.utils.time_utils import local_now, workday_window

logger = logging.getLogger(__name__)


class ReadOnlyTaskError(Exception):
    """Raised when a flow tries to change a row imported from an external calendar."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task {task_id} is imported from an external calendar and cannot be changed")


class DayContext:
    """Everything about a profile's day that the engine needs besides the rows."""
    def __init__(self, profile: Profile, day: Optional[date] = None, now_utc: Optional[datetime] = None):
        self.tz_name = profile.timezone or DEFAULT_TIMEZONE
        self.now = local_now(self.tz_name, now_utc)
        self.day = day or self.now.date()
        self.workday_start, self.workday_end = workday_window(self.day, profile.workday_start, profile.workday_end)
        self.meal_times = meal_times_for(profile)
        self.regen_pod = None
        if profile.regen_pod_start_time and profile.regen_pod_duration:
            self.regen_pod = RegenPod(start_time=profile.regen_pod_start_time, duration=profile.regen_pod_duration)

    @property
    def is_today(self) -> bool:
        return self.day == self.now.date()

    @property
    def search_start(self) -> datetime:
        if self.is_today and self.now > self.workday_start:
            return self.now.replace(second=0, microsecond=0)
        return self.workday_start

    def extra_blocks(self) -> List[TimeBlock]:
        return synthesized_blocks(
            self.day, self.workday_start, self.workday_end, self.now, self.regen_pod, self.meal_times,
        )


def meal_times_for(profile: Profile) -> List[MealTime]:
    meals = []
    for name, emoji in MEAL_SLOTS:
        start = getattr(profile, f"{name.lower()}_time")
        duration = getattr(profile, f"{name.lower()}_duration")
        if start is not None and duration:
            meals.append(MealTime(name=name, start=start, duration=duration, emoji=emoji))
    return meals


def _row_fields(model: NewScheduledTask) -> dict:
    fields = model.model_dump(exclude={"id"})
    return fields


class ScheduleService:
    """Stateless facade over the scheduling engine for one profile at a time."""

    # ================================
    # LOADING
    # ================================

    def day_rows(self, db: Session, profile: Profile, day: date) -> List[ScheduledTask]:
        return db.query(ScheduledTask).filter(
            ScheduledTask.user_id == profile.id,
            ScheduledTask.scheduled_date == day,
        ).all()

    def day_tasks(self, db: Session, profile: Profile, day: date) -> List[ScheduledTaskData]:
        return [ScheduledTaskData.model_validate(row) for row in self.day_rows(db, profile, day)]

    def sink_rows(self, db: Session, profile: Profile) -> List[RetiredTask]:
        return db.query(RetiredTask).filter(RetiredTask.user_id == profile.id).order_by(RetiredTask.retired_at.asc()).all()

    def get_task(self, db: Session, profile: Profile, task_id: str) -> Optional[ScheduledTask]:
        return db.query(ScheduledTask).filter(ScheduledTask.id == task_id, ScheduledTask.user_id == profile.id).first()

    def get_sink_task(self, db: Session, profile: Profile, task_id: str) -> Optional[RetiredTask]:
        return db.query(RetiredTask).filter(RetiredTask.id == task_id, RetiredTask.user_id == profile.id).first()

    def _lock_profile(self, db: Session, profile: Profile):
        # serializes writes per user on databases that support row locks
        db.query(Profile).filter(Profile.id == profile.id).with_for_update().first()

    def _commit(self, db: Session, what: str):
        try:
            db.commit()
        except Exception:
            db.rollback()
            logger.exception(f"Failed to write back {what}")
            raise

    # ================================
    # READ
    # ================================

    def build_schedule(self, db: Session, profile: Profile, ctx: DayContext) -> ScheduleOut:
        tasks = self.day_tasks(db, profile, ctx.day)
        schedule = calculate_schedule(
            tasks, ctx.day, ctx.workday_start, ctx.workday_end, ctx.now,
            regen_pod=ctx.regen_pod, meal_times=ctx.meal_times, tz_name=ctx.tz_name,
        )
        free_blocks = schedule_free_blocks(schedule, ctx.workday_start, ctx.workday_end)
        return ScheduleOut(
            day=ctx.day,
            workday_start=ctx.workday_start,
            workday_end=ctx.workday_end,
            schedule=schedule,
            free_blocks=[FreeBlockOut(start_time=b.start, end_time=b.end, duration=b.duration) for b in free_blocks],
            free_minutes=sum(b.duration for b in free_blocks),
        )

    def _occupied_blocks(self, db: Session, profile: Profile, ctx: DayContext) -> List[TimeBlock]:
        view = self.build_schedule(db, profile, ctx)
        return [TimeBlock(item.start_time, item.end_time) for item in view.schedule.items]

    # ================================
    # COMPACTION
    # ================================

    def compact_day(self, db: Session, profile: Profile, ctx: DayContext, commit: bool = True) -> CompactionOut:
        self._lock_profile(db, profile)
        rows = self.day_rows(db, profile, ctx.day)
        tasks = [ScheduledTaskData.model_validate(row) for row in rows]

        result = compact_schedule(
            tasks, ctx.day, ctx.workday_start, ctx.workday_end, ctx.now,
            extra_occupied_blocks=ctx.extra_blocks(), tz_name=ctx.tz_name,
        )
        placements = {task.id: task for task in result if is_movable(task)}

        unplaced = 0
        for row, task in zip(rows, tasks):
            if not is_movable(task) or has_ended(task, ctx.day, ctx.now, ctx.tz_name):
                continue
            minutes = task_minutes(task)
            placement = placements.get(task.id)
            if placement is not None:
                row.start_time = placement.start_time
                row.end_time = placement.end_time
                row.scheduled_date = placement.scheduled_date
            else:
                row.start_time = None
                row.end_time = None
                unplaced += 1
            row.duration = minutes

        if commit:
            self._commit(db, f"compaction for profile {profile.id} on {ctx.day}")
        logger.info(f"Compacted {ctx.day} for profile {profile.id}: {len(placements)} placed, {unplaced} unplaced")
        return CompactionOut(
            day=ctx.day, placed=len(placements), unplaced=unplaced,
            schedule=self.build_schedule(db, profile, ctx),
        )

    # ================================
    # CREATION
    # ================================

    def _insert_task(self, db: Session, profile: Profile, **fields) -> ScheduledTask:
        row = ScheduledTask(user_id=profile.id, **fields)
        db.add(row)
        return row

    def _insert_sink_task(self, db: Session, profile: Profile, draft: NewRetiredTask) -> RetiredTask:
        row = RetiredTask(user_id=profile.id, **draft.model_dump())
        db.add(row)
        return row

    def _place_duration(self, db: Session, profile: Profile, ctx: DayContext, total: int) -> Optional[datetime]:
        occupied = self._occupied_blocks(db, profile, ctx)
        return find_slot(total, occupied, ctx.search_start, ctx.workday_end)

    def quick_add(self, db: Session, profile: Profile, ctx: DayContext, text: str):
        """
        Parse quick-add text and persist it.

        Returns (row, message), or None when the text does not parse. A duration task
        that finds no room today lands in the sink instead.
        """
        parsed = parse_quick_add_input(text, ctx.day)
        if parsed is None:
            return None
        self._lock_profile(db, profile)

        if isinstance(parsed, TimeOffTask):
            row = self._insert_task(
                db, profile, name=parsed.name, start_time=parsed.start_time, end_time=parsed.end_time,
                scheduled_date=ctx.day, is_flexible=False, energy_cost=0,
            )
            self._commit(db, "time off")
            return row, f"Blocked out {parsed.start_time:%H:%M}-{parsed.end_time:%H:%M}"

        if parsed.should_sink:
            duration = parsed.duration if isinstance(parsed, DurationTask) else minutes_between(parsed.start_time, parsed.end_time)
            row = self._insert_sink_task(db, profile, NewRetiredTask(
                name=parsed.name, duration=duration,
                break_duration=getattr(parsed, "break_duration", None),
                original_scheduled_date=ctx.day, is_critical=parsed.is_critical,
                is_backburner=parsed.is_backburner, energy_cost=parsed.energy_cost,
            ))
            self._commit(db, "sink quick-add")
            return row, f"Sent '{parsed.name}' to the sink"

        if isinstance(parsed, FixedTimeTask):
            row = self._insert_task(
                db, profile, name=parsed.name, start_time=parsed.start_time, end_time=parsed.end_time,
                scheduled_date=ctx.day, is_flexible=False, is_critical=parsed.is_critical,
                is_backburner=parsed.is_backburner, energy_cost=parsed.energy_cost,
            )
            self._commit(db, "timed quick-add")
            return row, f"Scheduled '{parsed.name}' at {parsed.start_time:%H:%M}"

        return self._add_duration_task(db, profile, ctx, parsed)

    def _add_duration_task(self, db: Session, profile: Profile, ctx: DayContext, parsed: DurationTask):
        total = parsed.duration + (parsed.break_duration or 0)
        start = self._place_duration(db, profile, ctx, total)
        if start is None:
            row = self._insert_sink_task(db, profile, NewRetiredTask(
                name=parsed.name, duration=parsed.duration, break_duration=parsed.break_duration,
                original_scheduled_date=ctx.day, is_critical=parsed.is_critical,
                is_backburner=parsed.is_backburner, energy_cost=parsed.energy_cost,
            ))
            self._commit(db, "sink fallback")
            logger.info(f"No room for '{parsed.name}' on {ctx.day}, sent to sink")
            return row, f"No room for '{parsed.name}' today, sent it to the sink"

        row = self._insert_task(
            db, profile, name=parsed.name, start_time=start, end_time=start + timedelta(minutes=total),
            scheduled_date=ctx.day, break_duration=parsed.break_duration, duration=parsed.duration,
            is_flexible=parsed.is_flexible, is_critical=parsed.is_critical,
            is_backburner=parsed.is_backburner, energy_cost=parsed.energy_cost,
        )
        self._commit(db, "quick-add")
        return row, f"Scheduled '{parsed.name}' at {start:%H:%M}"

    def inject(self, db: Session, profile: Profile, ctx: DayContext, text: str):
        injection = parse_injection_command(text)
        if injection is None:
            return None
        self._lock_profile(db, profile)

        start = end = None
        if injection.start_time:
            start = parse_flexible_time(injection.start_time, ctx.day)
            if start is None:
                return None
            if injection.end_time:
                window = resolve_time_range(injection.start_time, injection.end_time, ctx.day)
                if window is None:
                    return None
                start, end = window
            else:
                minutes = injection.duration or DEFAULT_TASK_DURATION_FOR_ENERGY_CALCULATION
                end = start + timedelta(minutes=minutes + (injection.break_duration or 0))

        if injection.should_sink:
            duration = injection.duration
            if duration is None and start is not None:
                duration = minutes_between(start, end) - (injection.break_duration or 0)
            row = self._insert_sink_task(db, profile, NewRetiredTask(
                name=injection.task_name, duration=duration or DEFAULT_TASK_DURATION_FOR_ENERGY_CALCULATION,
                break_duration=injection.break_duration, original_scheduled_date=ctx.day,
                is_critical=injection.is_critical, is_backburner=injection.is_backburner,
                energy_cost=injection.energy_cost,
            ))
            self._commit(db, "sink injection")
            return row, f"Sent '{injection.task_name}' to the sink"

        if start is not None:
            row = self._insert_task(
                db, profile, name=injection.task_name, start_time=start, end_time=end,
                scheduled_date=ctx.day, break_duration=injection.break_duration,
                is_flexible=injection.is_flexible, is_critical=injection.is_critical,
                is_backburner=injection.is_backburner, energy_cost=injection.energy_cost,
            )
            self._commit(db, "injection")
            return row, f"Injected '{injection.task_name}' at {start:%H:%M}"

        draft = DurationTask(
            name=injection.task_name,
            duration=injection.duration or DEFAULT_TASK_DURATION_FOR_ENERGY_CALCULATION,
            break_duration=injection.break_duration,
            is_critical=injection.is_critical,
            is_backburner=injection.is_backburner,
            is_flexible=injection.is_flexible,
            energy_cost=injection.energy_cost,
        )
        return self._add_duration_task(db, profile, ctx, draft)

    def add_sink_task(self, db: Session, profile: Profile, ctx: DayContext, text: str) -> Optional[RetiredTask]:
        draft = parse_sink_task_input(text, ctx.now.date())
        if draft is None:
            return None
        row = self._insert_sink_task(db, profile, draft)
        self._commit(db, "sink task")
        return row

    # ================================
    # ROW UPDATES
    # ================================

    def _ensure_writable(self, row: ScheduledTask):
        if row.source_calendar_id:
            raise ReadOnlyTaskError(row.id)

    def complete_task(self, db: Session, profile: Profile, row: ScheduledTask) -> CompletionOut:
        self._ensure_writable(row)
        xp_gained = levels_gained = 0
        if not row.is_completed:
            row.is_completed = True
            xp_gained, levels_gained = award_completion(profile, row.energy_cost)
            self._commit(db, f"completion of {row.id}")
            logger.info(f"Profile {profile.id} completed {row.name}: +{xp_gained} XP, energy {profile.energy}")
        return CompletionOut(
            task=ScheduledTaskData.model_validate(row),
            xp_gained=xp_gained, levels_gained=levels_gained, energy=profile.energy,
        )

    def toggle_lock(self, db: Session, profile: Profile, row: ScheduledTask) -> ScheduledTask:
        self._ensure_writable(row)
        row.is_locked = not row.is_locked
        self._commit(db, f"lock toggle of {row.id}")
        return row

    def _retire_row(self, db: Session, profile: Profile, row: ScheduledTask) -> RetiredTask:
        task = ScheduledTaskData.model_validate(row)
        duration = task_minutes(task) if task.is_placed or task.duration else None
        retired = self._insert_sink_task(db, profile, NewRetiredTask(
            name=row.name,
            duration=duration,
            break_duration=row.break_duration,
            original_scheduled_date=row.scheduled_date,
            is_critical=row.is_critical,
            is_backburner=row.is_backburner,
            energy_cost=row.energy_cost,
            is_custom_energy_cost=row.is_custom_energy_cost,
            task_environment=row.task_environment,
        ))
        db.delete(row)
        return retired

    def retire_task(self, db: Session, profile: Profile, row: ScheduledTask) -> RetiredTask:
        self._ensure_writable(row)
        self._lock_profile(db, profile)
        retired = self._retire_row(db, profile, row)
        self._commit(db, f"retirement of {row.id}")
        return retired

    def rezone_task(self, db: Session, profile: Profile, ctx: DayContext, sink_row: RetiredTask) -> Optional[ScheduledTask]:
        """Place a sink row back on the day. Returns None when there is no room."""
        self._lock_profile(db, profile)
        duration = sink_row.duration or DEFAULT_TASK_DURATION_FOR_ENERGY_CALCULATION
        total = duration + (sink_row.break_duration or 0)
        start = self._place_duration(db, profile, ctx, total)
        if start is None:
            logger.info(f"No room to rezone {sink_row.name} on {ctx.day}")
            return None

        row = self._insert_task(
            db, profile, name=sink_row.name, start_time=start, end_time=start + timedelta(minutes=total),
            scheduled_date=ctx.day, break_duration=sink_row.break_duration, duration=duration,
            is_critical=sink_row.is_critical, is_backburner=sink_row.is_backburner,
            energy_cost=sink_row.energy_cost, is_custom_energy_cost=sink_row.is_custom_energy_cost,
            task_environment=sink_row.task_environment,
        )
        db.delete(sink_row)
        self._commit(db, f"rezone of {sink_row.id}")
        return row

    # ================================
    # AUTO-BALANCE
    # ================================

    def auto_balance(self, db: Session, profile: Profile, ctx: DayContext, sort_by=None, source="all-flexible", environments=None) -> AutoBalanceOut:
        self._lock_profile(db, profile)
        plan = plan_auto_balance(
            self.day_tasks(db, profile, ctx.day),
            [RetiredTaskData.model_validate(row) for row in self.sink_rows(db, profile)],
            ctx.day, ctx.workday_start, ctx.workday_end, ctx.now,
            energy=profile.energy, sort_by=sort_by, source=source, environments=environments,
            extra_occupied_blocks=ctx.extra_blocks(), tz_name=ctx.tz_name,
        )
        self.apply_plan(db, profile, plan)
        return AutoBalanceOut(plan=plan, schedule=self.build_schedule(db, profile, ctx))

    def apply_plan(self, db: Session, profile: Profile, plan):
        """Delete superseded rows and write placements, all or nothing."""
        reinserted = {task.id for task in plan.tasks_to_insert if task.id}

        for task_id in plan.scheduled_ids_to_delete:
            if task_id in reinserted:
                continue
            row = self.get_task(db, profile, task_id)
            if row is not None:
                db.delete(row)
        for task_id in plan.retired_ids_to_delete:
            row = self.get_sink_task(db, profile, task_id)
            if row is not None:
                db.delete(row)
        db.flush()

        for task in plan.tasks_to_insert:
            row = self.get_task(db, profile, task.id) if task.id else None
            if row is None:
                fields = _row_fields(task)
                if task.id:
                    fields["id"] = task.id
                self._insert_task(db, profile, **fields)
            else:
                for field, value in _row_fields(task).items():
                    setattr(row, field, value)

        for draft in plan.tasks_to_keep_in_sink:
            self._insert_sink_task(db, profile, draft)

        self._commit(db, f"auto-balance for profile {profile.id} on {plan.selected_date}")

    # ================================
    # COMMANDS
    # ================================

    def run_command(self, db: Session, profile: Profile, ctx: DayContext, text: str) -> Optional[CommandOut]:
        command = parse_command(text)
        if command is None:
            return None

        handler = getattr(self, f"_command_{command.type.replace(' ', '_')}", None)
        message = handler(db, profile, ctx, command) if handler else self._command_hint(command)
        return CommandOut(command=command, message=message, schedule=self.build_schedule(db, profile, ctx))

    def _command_hint(self, command: SchedulerCommand) -> str:
        hints = {
            "timeoff": "Add time off with: time off 1pm - 2pm",
            "show": "Showing your schedule",
            "reorder": "Use compact or auto-balance to reorder your day",
        }
        return hints.get(command.type, "Nothing to do")

    def _command_clear(self, db, profile, ctx, command) -> str:
        self._lock_profile(db, profile)
        cleared = 0
        for row in self.day_rows(db, profile, ctx.day):
            if row.is_locked or row.source_calendar_id:
                continue
            db.delete(row)
            cleared += 1
        self._commit(db, f"clear of {ctx.day}")
        return f"Cleared {cleared} tasks"

    def _command_remove(self, db, profile, ctx, command) -> str:
        if command.index is None and not command.target:
            return "Say which task to remove: remove <name> or remove index N"
        rows = sorted(
            self.day_rows(db, profile, ctx.day),
            key=lambda r: (r.start_time is None, r.start_time or datetime.min),
        )
        target = None
        if command.index is not None:
            if 0 <= command.index < len(rows):
                target = rows[command.index]
        else:
            target = next((r for r in rows if command.target in r.name.lower()), None)
        if target is None:
            return "No matching task found"

        self._ensure_writable(target)
        db.delete(target)
        self._commit(db, f"removal of {target.id}")
        return f"Removed '{target.name}'"

    def _command_compact(self, db, profile, ctx, command) -> str:
        result = self.compact_day(db, profile, ctx)
        message = f"Compacted schedule: {result.placed} placed"
        if result.unplaced:
            message += f", {result.unplaced} could not be scheduled"
        return message

    def _command_break(self, db, profile, ctx, command) -> str:
        row = self._insert_task(
            db, profile, name="Break", scheduled_date=ctx.day, duration=command.duration,
            is_flexible=True, energy_cost=0,
        )
        db.flush()
        self.compact_day(db, profile, ctx, commit=False)
        placed = row.start_time is not None
        if not placed:
            db.delete(row)
        self._commit(db, f"break for profile {profile.id} on {ctx.day}")
        if not placed:
            return "No room for a break"
        return f"Added a {command.duration} minute break"

    def _dump(self, db, profile, rows) -> int:
        self._lock_profile(db, profile)
        dumped = 0
        for row in rows:
            task = ScheduledTaskData.model_validate(row)
            if not is_movable(task):
                continue
            self._retire_row(db, profile, row)
            dumped += 1
        return dumped

    def _command_aether_dump(self, db, profile, ctx, command) -> str:
        dumped = self._dump(db, profile, self.day_rows(db, profile, ctx.day))
        self._commit(db, f"aether dump of {ctx.day}")
        return f"Moved {dumped} tasks to the sink"

    def _command_aether_dump_mega(self, db, profile, ctx, command) -> str:
        rows = db.query(ScheduledTask).filter(ScheduledTask.user_id == profile.id).all()
        dumped = self._dump(db, profile, rows)
        self._commit(db, "aether dump mega")
        return f"Moved {dumped} tasks from all days to the sink"

    # ================================
    # REGEN POD
    # ================================

    def start_regen_pod(self, db: Session, profile: Profile, ctx: DayContext, duration: int) -> Profile:
        profile.regen_pod_start_time = ctx.now.replace(second=0, microsecond=0)
        profile.regen_pod_duration = duration
        self._commit(db, f"regen pod start for profile {profile.id}")
        return profile

    def exit_regen_pod(self, db: Session, profile: Profile, ctx: DayContext):
        """Returns (elapsed_minutes, energy_gained), or None when no pod is running"""
        if not profile.regen_pod_start_time:
            return None
        elapsed = max(minutes_between(profile.regen_pod_start_time, ctx.now), 0)
        elapsed = min(elapsed, profile.regen_pod_duration or elapsed)
        gained = apply_pod_exit(profile, elapsed)
        self._commit(db, f"regen pod exit for profile {profile.id}")
        logger.info(f"Profile {profile.id} left the regen pod after {elapsed}m: +{gained} energy")
        return elapsed, gained


schedule_service = ScheduleService()
