import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import pytz

from ..database import get_db
from ..models import Profile
from ..schemas import ProfileCreate, ProfileLogin, Token, ProfileOut, ProfileUpdate
from ..auth import create_access_token, verify_password, hash_password, get_current_profile
from ..config import DEFAULT_TIMEZONE, DEFAULT_WORKDAY_START, DEFAULT_WORKDAY_END
from ..leveling import get_level_progress
from ..scheduling.utils.time_utils import parse_time_of_day

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


def _check_timezone(tz_name: str):
    if tz_name not in pytz.all_timezones_set:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown timezone: {tz_name}"
        )

# ============================================================================
# POST ENDPOINTS (Create/Login)
# ============================================================================

@router.post("/register", response_model=ProfileOut)
def register_user(user: ProfileCreate, db: Session = Depends(get_db)):
    """Register a new profile"""
    if db.query(Profile).filter(Profile.username == user.username).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already registered"
        )

    tz_name = user.timezone or DEFAULT_TIMEZONE
    _check_timezone(tz_name)

    profile = Profile(
        username=user.username,
        hashed_password=hash_password(user.password),
        timezone=tz_name,
        workday_start=parse_time_of_day(DEFAULT_WORKDAY_START),
        workday_end=parse_time_of_day(DEFAULT_WORKDAY_END),
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    logger.info(f"Registered profile {profile.id} ({profile.username})")
    return profile

@router.post("/login", response_model=Token)
def login_user(user_data: ProfileLogin, db: Session = Depends(get_db)):
    """Login with username and password"""
    profile = db.query(Profile).filter(Profile.username == user_data.username).first()
    if not profile or not verify_password(user_data.password, profile.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(data={"sub": profile.username})
    return {"access_token": access_token, "token_type": "bearer"}

# ============================================================================
# GET ENDPOINTS (Read)
# ============================================================================

@router.get("/me", response_model=ProfileOut)
def get_current_profile_info(current_profile: Profile = Depends(get_current_profile)):
    """Get current profile information"""
    return current_profile

@router.get("/me/level", response_model=dict)
def get_level(current_profile: Profile = Depends(get_current_profile)):
    return get_level_progress(current_profile)

# ============================================================================
# PUT ENDPOINTS (Update)
# ============================================================================

@router.put("/me", response_model=ProfileOut)
def update_profile(
    update: ProfileUpdate,
    current_profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db)
):
    """Update timezone, workday window and meal times"""
    changes = update.model_dump(exclude_unset=True)
    if changes.get("timezone"):
        _check_timezone(changes["timezone"])

    for field, value in changes.items():
        if field in ("timezone", "workday_start", "workday_end") and value is None:
            continue
        setattr(current_profile, field, value)

    db.commit()
    db.refresh(current_profile)
    return current_profile
