# market/models/activity_models.py
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from market.core.db import Base, BigId


class UserActivity(Base):
    __tablename__ = "user_activity"

    id = Column(BigId, primary_key=True, index=True)
    user_id = Column(BigId, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    username = Column(String, nullable=False)

    message = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
