"""
Celery beat task: re-enqueue batch jobs left in 'processing' by a crashed worker.
A job counts as stuck when its progress has not moved for settings.job_stuck_minutes.
"""
import logging
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from portrait_studio.core.celery_app import celery_app
from portrait_studio.core.config import settings
from portrait_studio.db.session import SessionLocal
from portrait_studio.services.jobs.service import JobService
from portrait_studio.utils.time import utcnow
from portrait_studio.workers.tasks.batch_job import run_batch_job

logger = logging.getLogger(__name__)


@celery_app.task(
    name="portrait_studio.workers.tasks.watchdog_jobs.resume_stuck_jobs",
    time_limit=60,
    soft_time_limit=55,
)
def resume_stuck_jobs() -> dict:
    db = SessionLocal()
    try:
        cutoff = utcnow() - timedelta(minutes=settings.job_stuck_minutes)
        stuck = JobService(db).stuck_jobs(cutoff)
        for job in stuck:
            run_batch_job.delay(job.job_id)
        if stuck:
            logger.warning("watchdog_resumed_stuck_jobs", extra={"total": len(stuck)})
        return {"ok": True, "resumed_count": len(stuck)}
    except SQLAlchemyError:
        logger.exception("watchdog_jobs_error")
        db.rollback()
        return {"ok": False}
    finally:
        db.close()
