"""
Celery task: run a purchase's batch job (10 style variants of one source image).

Delivery is at least once (acks_late). The runner resumes from the job's
persisted cursor and is a no-op for jobs that already finished.
"""
import logging

from sqlalchemy.orm import Session

from portrait_studio.core.celery_app import celery_app
from portrait_studio.core.config import settings
from portrait_studio.db.session import SessionLocal
from portrait_studio.services.app_settings.settings_service import AppSettingsService
from portrait_studio.services.image_generation import create_image_client
from portrait_studio.services.jobs.batch import BatchJobRunner
from portrait_studio.storage.factory import get_blob_store

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="portrait_studio.workers.tasks.batch_job.run_batch_job",
    acks_late=True,
    time_limit=3600,
    soft_time_limit=3500,
)
def run_batch_job(self, job_id: str) -> dict:
    db: Session = SessionLocal()
    try:
        config = AppSettingsService(db).snapshot(settings)
        runner = BatchJobRunner(
            db,
            get_blob_store(),
            create_image_client(settings),
            config,
        )
        job = runner.run(job_id)
        if job is None:
            return {"ok": False, "error": "job_not_found"}
        return {
            "ok": True,
            "job_id": job_id,
            "status": job.status,
            "completed": job.completed_images,
        }
    finally:
        db.close()
