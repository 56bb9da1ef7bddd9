from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portrait_studio.api.deps import get_runtime_config
from portrait_studio.db.session import get_db
from portrait_studio.schemas.jobs import ActiveJobOut, JobOut
from portrait_studio.services.app_settings.settings_service import RuntimeConfig
from portrait_studio.services.auth.jwt import Claims, get_current_user
from portrait_studio.services.generations.service import image_url
from portrait_studio.services.jobs.service import JobService


router = APIRouter(prefix="/api/jobs", tags=["jobs"])


@router.get("/active", response_model=ActiveJobOut)
def active_job(
    user: Claims = Depends(get_current_user),
    db: Session = Depends(get_db),
    config: RuntimeConfig = Depends(get_runtime_config),
) -> ActiveJobOut:
    """Most recent in-flight or just-finished batch job, for the polling client."""
    job = JobService(db).latest_visible_for_user(
        user.sub,
        limit=config.job_status_lookup_limit,
        recent_window_seconds=config.job_recent_window_seconds,
    )
    if job is None:
        return ActiveJobOut(job=None)
    return ActiveJobOut(
        job=JobOut(
            job_id=job.job_id,
            status=job.status,
            total_images=job.total_images,
            completed_images=job.completed_images,
            results=[image_url(path) for path in job.results or []],
            error_code=job.error_code,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )
    )
