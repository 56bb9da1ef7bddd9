"""Celery tasks: batch job entry point and the stuck-job watchdog."""
from datetime import timedelta
from unittest.mock import patch

from portrait_studio.models.job import Job
from portrait_studio.services.jobs.service import JobService
from portrait_studio.utils.time import utcnow
from portrait_studio.workers.tasks import batch_job, watchdog_jobs


def _job(db, job_id, status, updated_minutes_ago):
    updated_at = utcnow() - timedelta(minutes=updated_minutes_ago)
    db.add(
        Job(
            job_id=job_id,
            user_id="user-1",
            status=status,
            source_path="uploads/user-1/a.jpg",
            created_at=updated_at,
            updated_at=updated_at,
        )
    )
    db.commit()


class TestResumeStuckJobs:
    def test_requeues_only_stalled_processing_jobs(self, db):
        _job(db, "stalled", "processing", updated_minutes_ago=60)
        _job(db, "active", "processing", updated_minutes_ago=1)
        _job(db, "finished", "completed", updated_minutes_ago=60)
        with patch.object(watchdog_jobs.run_batch_job, "delay") as delay:
            result = watchdog_jobs.resume_stuck_jobs()
        assert result == {"ok": True, "resumed_count": 1}
        delay.assert_called_once_with("stalled")

    def test_nothing_to_do(self, db):
        with patch.object(watchdog_jobs.run_batch_job, "delay") as delay:
            assert watchdog_jobs.resume_stuck_jobs() == {"ok": True, "resumed_count": 0}
        delay.assert_not_called()


class TestRunBatchJobTask:
    def test_runs_job_to_completion(self, db, blob_store, fake_provider):
        blob_store.put("uploads/user-1/a.jpg", b"jpg")
        job = JobService(db).create_job("user-1", "uploads/user-1/a.jpg", prompt_id="anime", total_images=3)
        with patch.object(batch_job, "get_blob_store", return_value=blob_store), patch.object(
            batch_job, "create_image_client", return_value=fake_provider
        ):
            result = batch_job.run_batch_job.run(job.job_id)
        assert result == {"ok": True, "job_id": job.job_id, "status": "completed", "completed": 3}
        assert len(fake_provider.image_calls) == 3

    def test_missing_job(self, db):
        assert batch_job.run_batch_job.run("nope") == {"ok": False, "error": "job_not_found"}
