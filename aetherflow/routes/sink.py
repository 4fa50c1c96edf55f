"""
Aether Sink endpoints: the backlog of tasks with no place on a day.
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Profile
from ..schemas import TextInput, RezoneRequest
from ..auth import get_current_profile
from ..scheduling import ScheduledTaskData, RetiredTaskData
from ..services.schedule_service import schedule_service, DayContext

router = APIRouter()


@router.get("/", response_model=List[RetiredTaskData])
def list_sink(db: Session = Depends(get_db), current_profile: Profile = Depends(get_current_profile)):
    """List sink rows, oldest first"""
    return schedule_service.sink_rows(db, current_profile)


@router.post("/", response_model=RetiredTaskData)
def add_to_sink(
    payload: TextInput,
    db: Session = Depends(get_db),
    current_profile: Profile = Depends(get_current_profile),
):
    """Quick-add straight into the sink, e.g. "-Read article 20 !" """
    row = schedule_service.add_sink_task(db, current_profile, DayContext(current_profile, payload.day), payload.text)
    if row is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Task name is required")
    db.refresh(row)
    return row


@router.post("/{task_id}/rezone", response_model=ScheduledTaskData)
def rezone(
    task_id: str,
    request: RezoneRequest,
    db: Session = Depends(get_db),
    current_profile: Profile = Depends(get_current_profile),
):
    """Place a sink row into the first free gap of a day"""
    sink_row = schedule_service.get_sink_task(db, current_profile, task_id)
    if sink_row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sink task not found")

    row = schedule_service.rezone_task(db, current_profile, DayContext(current_profile, request.day), sink_row)
    if row is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No free time left on that day")
    db.refresh(row)
    return row
