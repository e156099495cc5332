from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from notes_api.core.database import Base


class PushSubscription(Base):
    """Web Push subscription descriptor, one per owner"""
    __tablename__ = "push_subscriptions"

    owner_id = Column(String(255), primary_key=True)
    # { endpoint, expirationTime, keys: { p256dh, auth } }
    subscription = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
