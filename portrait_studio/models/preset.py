from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, Text

from portrait_studio.db.base import Base, JSONType
from portrait_studio.utils.time import utcnow


class Preset(Base):
    """Stored (admin-managed) style preset."""

    __tablename__ = "presets"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    name = Column(String, nullable=False)
    prompt = Column(Text, nullable=False)
    tags = Column(JSONType, nullable=False, default=list)
    image_path = Column(String, nullable=True)  # reference image in the Blob Store
    usage_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
