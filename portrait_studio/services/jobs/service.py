"""
Job Record access. Progress writes are conditional on next_variant_index so
two runners can never both record the same variant; a False return means
another runner owns the job.
"""
from datetime import datetime, timedelta

from sqlalchemy import update
from sqlalchemy.orm import Session

from portrait_studio.models.job import Job
from portrait_studio.services.jobs.state import JobStatus, transition
from portrait_studio.utils.time import as_utc, utcnow

BATCH_SIZE = 10


class JobService:
    def __init__(self, db: Session):
        self.db = db

    def create_job(
        self,
        user_id: str,
        source_path: str,
        prompt_id: str | None = None,
        remix_from: str | None = None,
        total_images: int = BATCH_SIZE,
        commit: bool = True,
    ) -> Job:
        """With commit=False the row is only flushed, so the caller commits it with its own writes."""
        now = utcnow()
        job = Job(
            user_id=user_id,
            status=JobStatus.PROCESSING.value,
            total_images=total_images,
            completed_images=0,
            results=[],
            source_path=source_path,
            prompt_id=prompt_id,
            remix_from=remix_from,
            next_variant_index=0,
            created_at=now,
            updated_at=now,
        )
        self.db.add(job)
        if not commit:
            self.db.flush()
            return job
        self.db.commit()
        self.db.refresh(job)
        return job

    def get(self, job_id: str) -> Job | None:
        return self.db.query(Job).filter(Job.job_id == job_id).one_or_none()

    def _advance(self, job_id: str, expected_index: int, **values) -> bool:
        result = self.db.execute(
            update(Job)
            .where(
                Job.job_id == job_id,
                Job.status == JobStatus.PROCESSING.value,
                Job.next_variant_index == expected_index,
            )
            .values(next_variant_index=expected_index + 1, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def record_variant(self, job_id: str, expected_index: int, results: list[str], result_path: str) -> bool:
        """Append one result and bump completed_images in the same write."""
        new_results = [*results, result_path]
        return self._advance(
            job_id,
            expected_index,
            results=new_results,
            completed_images=len(new_results),
        )

    def skip_variant(self, job_id: str, expected_index: int) -> bool:
        return self._advance(job_id, expected_index)

    def finish(self, job_id: str, status: JobStatus, error_code: str | None = None) -> bool:
        """processing -> completed|failed. Returns False if the job was already terminal."""
        target = transition(JobStatus.PROCESSING, status)
        result = self.db.execute(
            update(Job)
            .where(Job.job_id == job_id, Job.status == JobStatus.PROCESSING.value)
            .values(status=target.value, error_code=error_code, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def latest_visible_for_user(
        self,
        user_id: str,
        limit: int = 10,
        recent_window_seconds: int = 60,
        now: datetime | None = None,
    ) -> Job | None:
        """
        Most recent job that is still processing, or finished within the recency
        window so the client can show the final state briefly. Read-only.
        """
        now = now or utcnow()
        jobs = (
            self.db.query(Job)
            .filter(Job.user_id == user_id)
            .order_by(Job.created_at.desc())
            .limit(limit)
            .all()
        )
        window = timedelta(seconds=recent_window_seconds)
        for job in jobs:
            if job.status == JobStatus.PROCESSING.value:
                return job
            updated_at = as_utc(job.updated_at)
            if updated_at is not None and now - updated_at <= window:
                return job
        return None

    def stuck_jobs(self, older_than: datetime) -> list[Job]:
        return (
            self.db.query(Job)
            .filter(Job.status == JobStatus.PROCESSING.value, Job.updated_at < older_than)
            .all()
        )
