from sqlalchemy import Column, DateTime, Integer, String

from portrait_studio.db.base import Base
from portrait_studio.utils.time import utcnow


class User(Base):
    __tablename__ = "users"

    # Stable subject id issued by the Identity Provider
    id = Column(String, primary_key=True)
    email = Column(String, nullable=True, index=True)
    display_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="user")  # user | admin

    credits = Column(Integer, nullable=False, default=5)
    subscription_status = Column(String, nullable=False, default="none")  # none | active
    subscription_expires_at = Column(DateTime(timezone=True), nullable=True)
    last_credit_reset_at = Column(DateTime(timezone=True), nullable=True)

    generation_count = Column(Integer, nullable=False, default=0)
    total_spent = Column(Integer, nullable=False, default=0)  # minor currency units

    # Bumped by every ledger write; conditional updates compare against it.
    version = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
