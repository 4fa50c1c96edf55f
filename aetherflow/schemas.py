from pydantic import BaseModel, Field
from datetime import datetime, date, time
from typing import Optional, List

from .scheduling.core.types import (
    TaskEnvironment, FormattedSchedule, ScheduledTaskData, AutoBalancePlan,
    SchedulerCommand,
)

# ----------------- Profile Schemas ---------------------

class ProfileCreate(BaseModel):
    username: str
    password: str
    timezone: Optional[str] = None

class ProfileLogin(BaseModel):
    username: str
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class ProfileUpdate(BaseModel):
    timezone: Optional[str] = None
    workday_start: Optional[time] = None
    workday_end: Optional[time] = None
    breakfast_time: Optional[time] = None
    breakfast_duration: Optional[int] = Field(default=None, ge=0)
    lunch_time: Optional[time] = None
    lunch_duration: Optional[int] = Field(default=None, ge=0)
    dinner_time: Optional[time] = None
    dinner_duration: Optional[int] = Field(default=None, ge=0)

class ProfileOut(BaseModel):
    id: int
    username: str
    energy: int
    xp: int
    level: int
    timezone: str
    workday_start: time
    workday_end: time
    breakfast_time: Optional[time] = None
    breakfast_duration: Optional[int] = None
    lunch_time: Optional[time] = None
    lunch_duration: Optional[int] = None
    dinner_time: Optional[time] = None
    dinner_duration: Optional[int] = None
    regen_pod_start_time: Optional[datetime] = None
    regen_pod_duration: Optional[int] = None

    class Config:
        from_attributes = True

# ----------------- Schedule Schemas ---------------------

class TextInput(BaseModel):
    text: str
    day: Optional[date] = None

class FreeBlockOut(BaseModel):
    start_time: datetime
    end_time: datetime
    duration: int

class ScheduleOut(BaseModel):
    day: date
    workday_start: datetime
    workday_end: datetime
    schedule: FormattedSchedule
    free_blocks: List[FreeBlockOut] = []
    free_minutes: int = 0

class CompactionOut(BaseModel):
    day: date
    placed: int
    unplaced: int
    schedule: ScheduleOut

class AutoBalanceRequest(BaseModel):
    day: Optional[date] = None
    sort_by: Optional[str] = None
    source: str = "all-flexible"
    environments: List[TaskEnvironment] = []

class AutoBalanceOut(BaseModel):
    plan: AutoBalancePlan
    schedule: ScheduleOut

class CommandOut(BaseModel):
    command: SchedulerCommand
    message: str
    schedule: Optional[ScheduleOut] = None

class CompletionOut(BaseModel):
    task: ScheduledTaskData
    xp_gained: int
    levels_gained: int
    energy: int

class RezoneRequest(BaseModel):
    day: Optional[date] = None

class RegenPodStart(BaseModel):
    duration: int = Field(gt=0)

class RegenPodExitOut(BaseModel):
    elapsed_minutes: int
    energy_gained: int
    energy: int
