import logging
from sqlalchemy.orm import Session

from ..celery_app import celery_app
from ..database import get_db
from ..models import Profile
from ..scheduling import InvalidTaskError
from ..services.schedule_service import schedule_service, DayContext

logger = logging.getLogger(__name__)


def compact_profile_today(profile: Profile, db: Session):
    """Compact today's schedule in the profile's own timezone"""
    ctx = DayContext(profile)
    try:
        result = schedule_service.compact_day(db, profile, ctx)
    except InvalidTaskError as e:
        logger.error(f"Skipping compaction for profile {profile.id}: {e}")
        return None
    return result.placed


@celery_app.task(name="aetherflow.celery_tasks.schedule.compact_profile")
def compact_profile(profile_id: int):
    db: Session = next(get_db())
    try:
        profile = db.query(Profile).filter_by(id=profile_id).first()
        if not profile:
            logger.error(f"Profile {profile_id} not found")
            return None
        return compact_profile_today(profile, db)
    finally:
        db.close()


@celery_app.task(name="aetherflow.celery_tasks.schedule.compact_all_profiles")
def compact_all_profiles():
    db: Session = next(get_db())
    try:
        profiles = db.query(Profile).filter(Profile.is_active == True).all()
        compacted = 0
        for profile in profiles:
            if compact_profile_today(profile, db) is not None:
                compacted += 1
        logger.info(f"Background compaction finished for {compacted}/{len(profiles)} profiles")
        return compacted
    finally:
        db.close()
