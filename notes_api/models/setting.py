from sqlalchemy import Column, Integer, String, Text, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from notes_api.core.database import Base

QUICK_NOTE_KEY = "quickNote"


class Setting(Base):
    """Per-user key/value row; at most one per (owner, key)"""
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String(255), nullable=False)
    key = Column(String(100), nullable=False)
    value = Column(Text, nullable=False, default="", server_default="")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint("owner_id", "key", name="uq_settings_owner_key"),)
