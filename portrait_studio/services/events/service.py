import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portrait_studio.models.event import Event

logger = logging.getLogger(__name__)


class EventService:
    """Analytics event log. Writes are best effort and never fail the caller."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def log(self, event_type: str, user_id: str | None, payload: dict[str, Any] | None = None) -> Event | None:
        entry = Event(event_type=event_type, user_id=user_id, payload=payload or {})
        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("event_log_failed", extra={"event_type": event_type, "user_id": user_id, "error": str(e)})
            return None
        return entry
