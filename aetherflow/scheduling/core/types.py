"""
Data shapes consumed and produced by the scheduling engine.
"""

import enum
from datetime import date, datetime, time
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, Field

from .constants import DEFAULT_SINK_ENVIRONMENT


class TaskEnvironment(str, enum.Enum):
    HOME = "home"
    LAPTOP = "laptop"
    AWAY = "away"
    PIANO = "piano"
    LAPTOP_PIANO = "laptop_piano"


# ----------------- Persisted rows ---------------------

class ScheduledTaskData(BaseModel):
    """One concrete placement of a task on a day."""
    id: str
    name: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    scheduled_date: date
    break_duration: Optional[int] = None
    duration: Optional[int] = None  # intended minutes while the row has no placement
    is_critical: bool = False
    is_backburner: bool = False
    is_flexible: bool = True
    is_locked: bool = False
    is_completed: bool = False
    energy_cost: int = 0
    is_custom_energy_cost: bool = False
    task_environment: TaskEnvironment = TaskEnvironment.LAPTOP
    source_calendar_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def is_placed(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def is_calendar_import(self) -> bool:
        return bool(self.source_calendar_id)


class RetiredTaskData(BaseModel):
    """A backlog ("sink") entry with no concrete placement."""
    id: str
    name: str
    duration: Optional[int] = None
    break_duration: Optional[int] = None
    original_scheduled_date: date
    is_critical: bool = False
    is_backburner: bool = False
    is_locked: bool = False
    is_completed: bool = False
    energy_cost: int = 0
    is_custom_energy_cost: bool = False
    task_environment: TaskEnvironment = TaskEnvironment.LAPTOP
    retired_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NewScheduledTask(BaseModel):
    """A scheduled row the caller should insert (or upsert when id is set)."""
    id: Optional[str] = None
    name: str
    start_time: datetime
    end_time: datetime
    scheduled_date: date
    break_duration: Optional[int] = None
    is_critical: bool = False
    is_backburner: bool = False
    is_flexible: bool = True
    is_locked: bool = False
    is_completed: bool = False
    energy_cost: int = 0
    is_custom_energy_cost: bool = False
    task_environment: TaskEnvironment = TaskEnvironment.LAPTOP
    source_calendar_id: Optional[str] = None


class NewRetiredTask(BaseModel):
    """A sink row the caller should insert."""
    name: str
    duration: Optional[int] = None
    break_duration: Optional[int] = None
    original_scheduled_date: date
    is_critical: bool = False
    is_backburner: bool = False
    is_locked: bool = False
    energy_cost: int = 0
    is_custom_energy_cost: bool = False
    task_environment: TaskEnvironment = TaskEnvironment(DEFAULT_SINK_ENVIRONMENT)


# ----------------- Calculator inputs / outputs ---------------------

class MealTime(BaseModel):
    name: str
    start: time
    duration: int
    emoji: Optional[str] = None


class RegenPod(BaseModel):
    start_time: datetime
    duration: int


class ScheduledItem(BaseModel):
    id: str
    name: str
    type: str
    emoji: str
    start_time: datetime
    end_time: datetime
    duration: int
    break_duration: Optional[int] = None
    description: Optional[str] = None
    is_critical: bool = False
    is_backburner: bool = False
    is_flexible: bool = False
    is_locked: bool = False
    is_completed: bool = False
    energy_cost: int = 0
    task_environment: Optional[TaskEnvironment] = None
    source_calendar_id: Optional[str] = None


class ScheduleSummary(BaseModel):
    total_tasks: int = 0
    active_minutes: int = 0
    break_minutes: int = 0
    total_energy_cost: int = 0
    unscheduled_count: int = 0
    critical_tasks_remaining: int = 0
    extends_past_midnight: bool = False
    midnight_rollover_message: Optional[str] = None


class FormattedSchedule(BaseModel):
    items: List[ScheduledItem] = Field(default_factory=list)
    summary: ScheduleSummary = Field(default_factory=ScheduleSummary)


# ----------------- Parser outputs ---------------------

class DurationTask(BaseModel):
    """A flexible (or explicitly fixed) task known only by its length."""
    kind: Literal["duration"] = "duration"
    name: str
    duration: int
    break_duration: Optional[int] = None
    is_critical: bool = False
    is_backburner: bool = False
    is_flexible: bool = True
    should_sink: bool = False
    energy_cost: int = 0


class FixedTimeTask(BaseModel):
    """A task pinned to an explicit time range on a day."""
    kind: Literal["fixed_time"] = "fixed_time"
    name: str
    start_time: datetime
    end_time: datetime
    is_critical: bool = False
    is_backburner: bool = False
    should_sink: bool = False
    energy_cost: int = 0

    @property
    def is_flexible(self) -> bool:
        return False


class TimeOffTask(BaseModel):
    """A blocked-out stretch of the day. Never flexible, never urgent, free of energy cost."""
    kind: Literal["time_off"] = "time_off"
    name: str = "Time Off"
    start_time: datetime
    end_time: datetime

    @property
    def is_flexible(self) -> bool:
        return False

    @property
    def energy_cost(self) -> int:
        return 0


ParsedTask = Annotated[Union[DurationTask, FixedTimeTask, TimeOffTask], Field(discriminator="kind")]


class ParsedInjection(BaseModel):
    task_name: str
    duration: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    break_duration: Optional[int] = None
    is_critical: bool = False
    is_backburner: bool = False
    is_flexible: bool = True
    should_sink: bool = False
    energy_cost: int = 0


class SchedulerCommand(BaseModel):
    type: str
    target: Optional[str] = None
    index: Optional[int] = None
    duration: Optional[int] = None


# ----------------- Auto-balance ---------------------

class AutoBalancePlan(BaseModel):
    selected_date: date
    scheduled_ids_to_delete: List[str] = Field(default_factory=list)
    retired_ids_to_delete: List[str] = Field(default_factory=list)
    tasks_to_insert: List[NewScheduledTask] = Field(default_factory=list)
    tasks_to_keep_in_sink: List[NewRetiredTask] = Field(default_factory=list)
