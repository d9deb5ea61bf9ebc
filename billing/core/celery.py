"""
Celery configuration for background tasks
"""
from celery import Celery

from billing.core.config import settings

celery_app = Celery(
    "billing",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "billing.modules.invoices.tasks",
    ]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,  # 10 minutes
    task_soft_time_limit=8 * 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    result_expires=3600,  # 1 hour

    task_routes={
        "billing.modules.invoices.tasks.*": {"queue": "invoices"},
    },

    beat_schedule={
        "reconcile-missing-invoices": {
            "task": "billing.modules.invoices.tasks.reconcile_missing_invoices",
            "schedule": 3600.0,  # Run every hour
        },
    }
)

if __name__ == "__main__":
    celery_app.start()
