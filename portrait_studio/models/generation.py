from enum import Enum
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from portrait_studio.db.base import Base, JSONType
from portrait_studio.utils.time import utcnow


class GenerationStatus(str, Enum):
    # Single generations are written once, after the image exists.
    COMPLETED = "completed"


class Generation(Base):
    __tablename__ = "generations"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    original_path = Column(String, nullable=False)
    result_path = Column(String, nullable=False)
    prompt = Column(Text, nullable=False)  # hidden from everyone but the owner
    summary = Column(String, nullable=False, default="")
    tags = Column(JSONType, nullable=False, default=list)
    status = Column(String, nullable=False, default=GenerationStatus.COMPLETED.value)

    votes_count = Column(Integer, nullable=False, default=0)
    likes_count = Column(Integer, nullable=False, default=0)
    bookmarks_count = Column(Integer, nullable=False, default=0)
    is_public = Column(Boolean, nullable=False, default=False, index=True)

    remixed_from = Column(String, nullable=True)  # generation id or preset id
    stored_prompt_id = Column(String, nullable=True)
    model = Column(String, nullable=True)
    token_cost = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
