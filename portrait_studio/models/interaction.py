from uuid import uuid4

from sqlalchemy import Column, DateTime, String, UniqueConstraint

from portrait_studio.db.base import Base
from portrait_studio.utils.time import utcnow


class Interaction(Base):
    """A user's like / bookmark / vote on a generation."""

    __tablename__ = "interactions"
    __table_args__ = (
        UniqueConstraint("user_id", "generation_id", "kind", name="uq_interactions_user_generation_kind"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    generation_id = Column(String, nullable=False, index=True)
    kind = Column(String, nullable=False)  # like | bookmark | vote
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
