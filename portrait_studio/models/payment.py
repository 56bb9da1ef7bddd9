"""
Payment model: one row per completed hosted checkout.
checkout_session_id is unique and makes webhook redelivery idempotent.
"""
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String

from portrait_studio.db.base import Base
from portrait_studio.utils.time import utcnow


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    checkout_session_id = Column(String, unique=True, nullable=False)
    purchase_type = Column(String, nullable=False)  # credit_pack | subscription
    amount_total = Column(Integer, nullable=False, default=0)  # minor units
    currency = Column(String, nullable=True)
    credits_granted = Column(Integer, nullable=False, default=0)
    job_id = Column(String, nullable=True)  # batch job started by this purchase
    # Set together with total_spent and the job row; null means a redelivery must finish it.
    fulfilled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
