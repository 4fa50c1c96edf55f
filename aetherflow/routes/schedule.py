"""
Schedule API endpoints for frontend
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Profile, ScheduledTask
from ..schemas import (
    TextInput, ScheduleOut, CompactionOut, CommandOut, CompletionOut, AutoBalanceRequest, AutoBalanceOut,
)
from ..auth import get_current_profile
from ..scheduling import InvalidTaskError, ScheduledTaskData, RetiredTaskData
from ..services.schedule_service import schedule_service, DayContext, ReadOnlyTaskError

router = APIRouter()


def _get_task_or_404(db: Session, profile: Profile, task_id: str) -> ScheduledTask:
    row = schedule_service.get_task(db, profile, task_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return row


def _forbidden(e: ReadOnlyTaskError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


def _unprocessable(e: InvalidTaskError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

# ============================================================================
# GET ENDPOINTS (Read)
# ============================================================================

@router.get("/", response_model=ScheduleOut)
def get_schedule(
    day: Optional[date] = Query(None, description="Day to show, defaults to today in the profile's timezone"),
    db: Session = Depends(get_db),
    current_profile: Profile = Depends(get_current_profile),
):
    """Get the formatted schedule and free gaps for one day"""
    return schedule_service.build_schedule(db, current_profile, DayContext(current_profile, day))

# ============================================================================
# POST ENDPOINTS (Create)
# ============================================================================

@router.post("/quick-add")
def quick_add(
    payload: TextInput,
    db: Session = Depends(get_db),
    current_profile: Profile = Depends(get_current_profile),
):
    """Parse quick-add text like "Write report 45 10 !" or "Gym 6pm-7pm" and save it"""
    result = schedule_service.quick_add(db, current_profile, DayContext(current_profile, payload.day), payload.text)
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Could not understand '{payload.text}'")
    row, message = result
    if isinstance(row, ScheduledTask):
        return {"message": message, "task": ScheduledTaskData.model_validate(row), "sink_task": None}
    return {"message": message, "task": None, "sink_task": RetiredTaskData.model_validate(row)}


@router.post("/inject")
def inject(
    payload: TextInput,
    db: Session = Depends(get_db),
    current_profile: Profile = Depends(get_current_profile),
):
    """Parse an inject command like 'inject "Call mom" from 2pm to 3pm' and save it"""
    result = schedule_service.inject(db, current_profile, DayContext(current_profile, payload.day), payload.text)
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Could not understand '{payload.text}'")
    row, message = result
    if isinstance(row, ScheduledTask):
        return {"message": message, "task": ScheduledTaskData.model_validate(row), "sink_task": None}
    return {"message": message, "task": None, "sink_task": RetiredTaskData.model_validate(row)}


@router.post("/command", response_model=CommandOut)
def run_command(
    payload: TextInput,
    db: Session = Depends(get_db),
    current_profile: Profile = Depends(get_current_profile),
):
    try:
        result = schedule_service.run_command(db, current_profile, DayContext(current_profile, payload.day), payload.text)
    except ReadOnlyTaskError as e:
        raise _forbidden(e)
    except InvalidTaskError as e:
        raise _unprocessable(e)
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown command '{payload.text}'")
    return result


@router.post("/compact", response_model=CompactionOut)
def compact(
    day: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_profile: Profile = Depends(get_current_profile),
):
    """Re-pack flexible tasks into the earliest free gaps of the day"""
    try:
        return schedule_service.compact_day(db, current_profile, DayContext(current_profile, day))
    except InvalidTaskError as e:
        raise _unprocessable(e)


@router.post("/auto-balance", response_model=AutoBalanceOut)
def auto_balance(
    request: AutoBalanceRequest,
    db: Session = Depends(get_db),
    current_profile: Profile = Depends(get_current_profile),
):
    """Rebuild the day's flexible tasks from the schedule and the sink"""
    try:
        return schedule_service.auto_balance(
            db, current_profile, DayContext(current_profile, request.day),
            sort_by=request.sort_by, source=request.source, environments=request.environments or None,
        )
    except InvalidTaskError as e:
        raise _unprocessable(e)

# ============================================================================
# TASK ACTIONS
# ============================================================================

@router.post("/tasks/{task_id}/complete", response_model=CompletionOut)
def complete_task(
    task_id: str,
    db: Session = Depends(get_db),
    current_profile: Profile = Depends(get_current_profile),
):
    """Mark a task done, granting XP and spending energy"""
    row = _get_task_or_404(db, current_profile, task_id)
    try:
        return schedule_service.complete_task(db, current_profile, row)
    except ReadOnlyTaskError as e:
        raise _forbidden(e)


@router.post("/tasks/{task_id}/lock", response_model=ScheduledTaskData)
def toggle_lock(
    task_id: str,
    db: Session = Depends(get_db),
    current_profile: Profile = Depends(get_current_profile),
):
    row = _get_task_or_404(db, current_profile, task_id)
    try:
        return schedule_service.toggle_lock(db, current_profile, row)
    except ReadOnlyTaskError as e:
        raise _forbidden(e)


@router.post("/tasks/{task_id}/retire", response_model=RetiredTaskData)
def retire_task(
    task_id: str,
    db: Session = Depends(get_db),
    current_profile: Profile = Depends(get_current_profile),
):
    """Move a task off the schedule and into the sink"""
    row = _get_task_or_404(db, current_profile, task_id)
    try:
        retired = schedule_service.retire_task(db, current_profile, row)
    except ReadOnlyTaskError as e:
        raise _forbidden(e)
    db.refresh(retired)
    return retired
