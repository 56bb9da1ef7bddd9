from datetime import datetime

from portrait_studio.schemas.base import CamelModel


class JobOut(CamelModel):
    job_id: str
    status: str
    total_images: int
    completed_images: int
    results: list[str]  # image urls, completion order
    error_code: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ActiveJobOut(CamelModel):
    job: JobOut | None = None
