"""
Celery configuration for AetherFlow background compaction
"""

from celery import Celery
from celery.schedules import crontab

from .config import CELERY_BROKER_URL, CELERY_RESULT_BACKEND, COMPACTION_INTERVAL_MINUTES

celery_app = Celery(
    "aetherflow",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
    include=["aetherflow.celery_tasks.schedule"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
)

celery_app.conf.beat_schedule = {
    'compact-all-profiles': {
        'task': 'aetherflow.celery_tasks.schedule.compact_all_profiles',
        'schedule': crontab(minute=f'*/{COMPACTION_INTERVAL_MINUTES}'),
    },
}

if __name__ == "__main__":
    celery_app.start()
