"""
Celery Worker Configuration
Task queue for background jobs.
"""
from celery import Celery

from notevault.core.config import settings

celery_app = Celery(
    "notevault",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "notevault.tasks.notifications",
        "notevault.tasks.payments",
    ],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Asia/Kolkata",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,  # 10 minutes
    task_soft_time_limit=8 * 60,  # 8 minutes
    worker_prefetch_multiplier=1,
    result_expires=3600,  # 1 hour
    beat_schedule={
        # Move matured sale earnings from pending to available balance
        "release-escrow": {
            "task": "notevault.tasks.payments.release_escrow",
            "schedule": 3600.0,  # Every hour
        },
    },
)
