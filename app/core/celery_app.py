"""
Celery application: broker and result backend from settings.
Tasks are in app.bonus.tasks; beat keeps the daily code alive and purges expired codes.
"""
from celery import Celery
from celery.schedules import crontab

from app.core.config import settings

celery_app = Celery(
    "app",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "app.bonus.tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
    task_time_limit=300,
    result_expires=86400,
    timezone="UTC",
    beat_schedule={
        "ensure-daily-code": {
            "task": "app.bonus.tasks.ensure_daily_code",
            "schedule": crontab(minute=f"*/{settings.bonus_code_ensure_minutes}"),
        },
        "cleanup-expired-codes": {
            "task": "app.bonus.tasks.cleanup_expired_codes",
            "schedule": crontab(hour=settings.bonus_cleanup_hour, minute=0),
        },
    },
)

celery_app.autodiscover_tasks(["app.bonus"])
