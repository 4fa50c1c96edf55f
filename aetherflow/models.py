from sqlalchemy import String, Integer, Boolean, Enum, ForeignKey, DateTime, Date, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime, date, time
from typing import Optional
import uuid

from .database import Base
from .scheduling.core.types import TaskEnvironment


def new_id() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String, unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Gamification
    energy: Mapped[int] = mapped_column(Integer, default=100)
    xp: Mapped[int] = mapped_column(Integer, default=0)
    level: Mapped[int] = mapped_column(Integer, default=1)

    # Day shape
    timezone: Mapped[str] = mapped_column(String, default="UTC")
    workday_start: Mapped[time] = mapped_column(Time, default=time(9, 0))
    workday_end: Mapped[time] = mapped_column(Time, default=time(17, 0))
    breakfast_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    breakfast_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    lunch_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    lunch_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    dinner_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    dinner_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Energy regen pod, stored as wall-clock time in the profile's timezone
    regen_pod_start_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    regen_pod_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    scheduled_tasks = relationship("ScheduledTask", back_populates="profile", cascade="all, delete-orphan")
    retired_tasks = relationship("RetiredTask", back_populates="profile", cascade="all, delete-orphan")


class ScheduledTask(Base):
    __tablename__ = "scheduled_tasks"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    user_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"), index=True)

    name: Mapped[str] = mapped_column(String, nullable=False)
    # Wall-clock times in the profile's timezone
    start_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    scheduled_date: Mapped[date] = mapped_column(Date, index=True)
    break_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_critical: Mapped[bool] = mapped_column(Boolean, default=False)
    is_backburner: Mapped[bool] = mapped_column(Boolean, default=False)
    is_flexible: Mapped[bool] = mapped_column(Boolean, default=True)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)

    energy_cost: Mapped[int] = mapped_column(Integer, default=0)
    is_custom_energy_cost: Mapped[bool] = mapped_column(Boolean, default=False)
    task_environment: Mapped[TaskEnvironment] = mapped_column(Enum(TaskEnvironment), default=TaskEnvironment.LAPTOP)
    source_calendar_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    profile = relationship("Profile", back_populates="scheduled_tasks")


class RetiredTask(Base):
    __tablename__ = "aethersink"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    user_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"), index=True)

    name: Mapped[str] = mapped_column(String, nullable=False)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    break_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    original_scheduled_date: Mapped[date] = mapped_column(Date)

    is_critical: Mapped[bool] = mapped_column(Boolean, default=False)
    is_backburner: Mapped[bool] = mapped_column(Boolean, default=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)

    energy_cost: Mapped[int] = mapped_column(Integer, default=0)
    is_custom_energy_cost: Mapped[bool] = mapped_column(Boolean, default=False)
    task_environment: Mapped[TaskEnvironment] = mapped_column(Enum(TaskEnvironment), default=TaskEnvironment.LAPTOP)

    retired_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    profile = relationship("Profile", back_populates="retired_tasks")
