from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String

from portrait_studio.db.base import Base, JSONType
from portrait_studio.utils.time import utcnow


class Job(Base):
    """Batch job: ten style variants of one source image, produced after a purchase."""

    __tablename__ = "jobs"

    job_id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False)  # processing | completed | failed
    total_images = Column(Integer, nullable=False, default=10)
    completed_images = Column(Integer, nullable=False, default=0)
    results = Column(JSONType, nullable=False, default=list)  # blob paths, completion order
    source_path = Column(String, nullable=False)
    prompt_id = Column(String, nullable=True)
    remix_from = Column(String, nullable=True)
    # Index of the next variant to attempt; lets a redelivered task resume.
    next_variant_index = Column(Integer, nullable=False, default=0)
    error_code = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
