"""
Celery application configuration
"""

import os

from celery import Celery
from celery.schedules import crontab

from portal.core.config import settings

# Use REDIS_URL as fallback for Celery broker
broker_url = os.environ.get('CELERY_BROKER_URL', os.environ.get('REDIS_URL', settings.celery_broker_url))
backend_url = os.environ.get('CELERY_RESULT_BACKEND', os.environ.get('REDIS_URL', settings.celery_result_backend))

celery = Celery(
    "portal",
    broker=broker_url,
    backend=backend_url,
    include=["portal.tasks.prize_tasks", "portal.tasks.notification_tasks"]
)

celery.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Asia/Dhaka",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    result_expires=3600,  # 1 hour
    worker_concurrency=int(os.getenv("CELERY_WORKER_CONCURRENCY", 2)),
    task_default_queue="default",
)

celery.conf.beat_schedule = {
    'process-expired-prizes': {
        'task': 'portal.tasks.prize_tasks.process_expired_prizes_task',
        'schedule': crontab(minute=0),  # hourly
    },
    'escalate-admin-notifications': {
        'task': 'portal.tasks.notification_tasks.escalate_notifications_task',
        'schedule': crontab(minute=15, hour='*/6'),
    },
}

# For testing, we can run tasks synchronously
if settings.app_env == "testing":
    celery.conf.task_always_eager = True
    celery.conf.task_eager_propagates = True

if __name__ == "__main__":
    celery.start()
