"""Tests for the job status lookup used by GET /api/jobs/active."""
from datetime import datetime, timedelta, timezone

from portrait_studio.models.job import Job
from portrait_studio.services.jobs.service import JobService

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _add_job(db, job_id, status, created_minutes_ago, updated_seconds_ago=None, user_id="user-1", **kwargs):
    created_at = NOW - timedelta(minutes=created_minutes_ago)
    updated_at = NOW - timedelta(seconds=updated_seconds_ago) if updated_seconds_ago is not None else created_at
    db.add(
        Job(
            job_id=job_id,
            user_id=user_id,
            status=status,
            source_path="uploads/user-1/a.jpg",
            total_images=10,
            completed_images=kwargs.pop("completed_images", 0),
            results=kwargs.pop("results", []),
            created_at=created_at,
            updated_at=updated_at,
            **kwargs,
        )
    )
    db.commit()


def _lookup(db, **kwargs):
    return JobService(db).latest_visible_for_user("user-1", now=NOW, **kwargs)


class TestLatestVisibleForUser:
    def test_no_jobs(self, db):
        assert _lookup(db) is None

    def test_processing_job(self, db):
        _add_job(db, "j1", "processing", created_minutes_ago=30)
        assert _lookup(db).job_id == "j1"

    def test_recently_completed_job(self, db):
        _add_job(db, "j1", "completed", created_minutes_ago=10, updated_seconds_ago=20)
        assert _lookup(db).job_id == "j1"

    def test_completed_outside_window_is_hidden(self, db):
        _add_job(db, "j1", "completed", created_minutes_ago=10, updated_seconds_ago=120)
        assert _lookup(db) is None

    def test_recently_failed_job_is_visible(self, db):
        _add_job(db, "j1", "failed", created_minutes_ago=1, updated_seconds_ago=5, error_code="source_missing")
        assert _lookup(db).error_code == "source_missing"

    def test_most_recent_first(self, db):
        _add_job(db, "older", "processing", created_minutes_ago=20)
        _add_job(db, "newer", "processing", created_minutes_ago=5)
        assert _lookup(db).job_id == "newer"

    def test_skips_stale_newer_job(self, db):
        _add_job(db, "processing", "processing", created_minutes_ago=20)
        _add_job(db, "stale", "completed", created_minutes_ago=5, updated_seconds_ago=600)
        assert _lookup(db).job_id == "processing"

    def test_lookup_is_bounded(self, db):
        _add_job(db, "processing", "processing", created_minutes_ago=60)
        for i in range(3):
            _add_job(db, f"done-{i}", "completed", created_minutes_ago=10 + i, updated_seconds_ago=900)
        assert _lookup(db, limit=3) is None
        assert _lookup(db, limit=4).job_id == "processing"

    def test_other_users_ignored(self, db):
        _add_job(db, "j1", "processing", created_minutes_ago=1, user_id="user-2")
        assert _lookup(db) is None

    def test_read_only(self, db):
        _add_job(db, "j1", "completed", created_minutes_ago=1, updated_seconds_ago=10, completed_images=3)
        _lookup(db)
        db.expire_all()
        job = db.query(Job).one()
        assert job.status == "completed"
        assert job.completed_images == 3


class TestStuckJobs:
    def test_only_processing_without_recent_progress(self, db):
        _add_job(db, "stuck", "processing", created_minutes_ago=60, updated_seconds_ago=3600)
        _add_job(db, "moving", "processing", created_minutes_ago=60, updated_seconds_ago=30)
        _add_job(db, "done", "completed", created_minutes_ago=60, updated_seconds_ago=3600)
        stuck = JobService(db).stuck_jobs(NOW - timedelta(minutes=15))
        assert [job.job_id for job in stuck] == ["stuck"]


class TestFinish:
    def test_finish_twice(self, db):
        _add_job(db, "j1", "processing", created_minutes_ago=1)
        service = JobService(db)
        assert service.finish("j1", "completed") is True
        assert service.finish("j1", "failed") is False
        db.expire_all()
        assert db.query(Job).one().status == "completed"
