# backoffice/tasks/celery_app.py
from __future__ import annotations

from celery import Celery
from celery.schedules import crontab

from ..config import settings

BROKER = settings.celery_broker_url or "redis://localhost:6379/0"
BACKEND = settings.celery_result_backend or "redis://localhost:6379/1"

celery_app = Celery(
    "backoffice",
    broker=BROKER,
    backend=BACKEND,
    include=["backoffice.tasks.scheduled"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone="UTC",
)

celery_app.conf.task_routes = {
    "backoffice.tasks.scheduled.*": {"queue": "sweeps"},
}

celery_app.conf.beat_schedule = {
    "nightly-sweeps": {
        "task": "backoffice.tasks.scheduled.run_nightly_sweeps",
        "schedule": crontab(hour=settings.sweep_hour_utc, minute=0),
    },
    # first week of January, for the year just closed
    "year-end-dividends": {
        "task": "backoffice.tasks.scheduled.run_year_end_dividends",
        "schedule": crontab(hour=settings.sweep_hour_utc, minute=30, day_of_month="1-7", month_of_year="1"),
    },
}
