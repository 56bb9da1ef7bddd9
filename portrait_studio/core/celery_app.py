"""
Celery application: broker and result backend from settings.
Batch jobs run in portrait_studio.workers.tasks.batch_job; the watchdog re-enqueues
jobs abandoned in 'processing' by a crashed worker.
"""
from celery import Celery
from celery.schedules import crontab

from portrait_studio.core.config import settings
from portrait_studio.core.logging import configure_logging

configure_logging()

celery_app = Celery(
    "portrait_studio",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "portrait_studio.workers.tasks.batch_job",
        "portrait_studio.workers.tasks.watchdog_jobs",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
    task_time_limit=3600,
    result_expires=86400,
    beat_schedule={
        "resume-stuck-jobs": {
            "task": "portrait_studio.workers.tasks.watchdog_jobs.resume_stuck_jobs",
            "schedule": crontab(minute="*/5"),
        },
    },
)

celery_app.conf.task_routes = {
    "portrait_studio.workers.tasks.batch_job.run_batch_job": {"queue": "generation"},
}
