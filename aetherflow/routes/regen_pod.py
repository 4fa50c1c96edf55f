from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Profile
from ..schemas import RegenPodStart, RegenPodExitOut, ProfileOut
from ..auth import get_current_profile
from ..services.schedule_service import schedule_service, DayContext

router = APIRouter()


@router.post("/start", response_model=ProfileOut)
def start_pod(
    request: RegenPodStart,
    db: Session = Depends(get_db),
    current_profile: Profile = Depends(get_current_profile),
):
    """Enter the regen pod now for the given number of minutes"""
    return schedule_service.start_regen_pod(db, current_profile, DayContext(current_profile), request.duration)


@router.post("/exit", response_model=RegenPodExitOut)
def exit_pod(db: Session = Depends(get_db), current_profile: Profile = Depends(get_current_profile)):
    """Leave the pod and collect energy for the minutes spent inside"""
    result = schedule_service.exit_regen_pod(db, current_profile, DayContext(current_profile))
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No regen pod is running")
    elapsed, gained = result
    return RegenPodExitOut(elapsed_minutes=elapsed, energy_gained=gained, energy=current_profile.energy)
