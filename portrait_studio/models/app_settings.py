from sqlalchemy import Column, DateTime, Integer, String

from portrait_studio.db.base import Base
from portrait_studio.utils.time import utcnow


class AppSettings(Base):
    """Runtime overrides (single row, id=1). Null columns fall back to env settings."""

    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True, default=1)
    image_model = Column(String, nullable=True)  # null = settings.gemini_image_model
    text_model = Column(String, nullable=True)  # null = settings.gemini_text_model
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
