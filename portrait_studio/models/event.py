from uuid import uuid4

from sqlalchemy import Column, DateTime, String

from portrait_studio.db.base import Base, JSONType
from portrait_studio.utils.time import utcnow


class Event(Base):
    __tablename__ = "events"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    event_type = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=True, index=True)
    payload = Column(JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
