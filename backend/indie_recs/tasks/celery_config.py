"""Celery configuration and periodic schedule"""

from celery import Celery
from celery.schedules import crontab

from ..config import settings
from ..utils.logging import configure_stdlib_logging, setup_logging

setup_logging(log_level=settings.LOG_LEVEL)
configure_stdlib_logging("celery", "celery.task", "celery.worker")

celery_app = Celery(
    "indie_recs_tasks",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["indie_recs.tasks.celery_tasks"],
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_track_started=True,
    task_time_limit=3600,  # 1 hour
    task_soft_time_limit=3000,  # 50 minutes
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

# Periodic tasks schedule
celery_app.conf.beat_schedule = {
    'regenerate-active-users': {
        'task': 'indie_recs.tasks.celery_tasks.regenerate_active_users',
        'schedule': crontab(minute=0, hour=f'*/{settings.BATCH_REGENERATION_HOURS}'),
    },
    'archive-old-interactions': {
        'task': 'indie_recs.tasks.celery_tasks.archive_old_interactions',
        'schedule': crontab(hour=1, minute=0),  # Run at 1 AM daily
    },
}
