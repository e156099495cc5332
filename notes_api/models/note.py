from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean
from sqlalchemy.sql import func, expression
from notes_api.core.database import Base

DEFAULT_COLOR = "#f1e363ff"
DEFAULT_CATEGORY = "Clase"


class Note(Base):
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String(255), nullable=False, index=True)
    title = Column(Text, nullable=False, default="", server_default="")
    body = Column(Text, nullable=False, default="", server_default="")
    due_at = Column(DateTime(timezone=True), nullable=True, index=True)
    color = Column(String(32), nullable=False, default=DEFAULT_COLOR, server_default=DEFAULT_COLOR)
    category = Column(String(100), nullable=False, default=DEFAULT_CATEGORY, server_default=DEFAULT_CATEGORY)
    pinned = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    archived = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    reminders_enabled = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    attachment_url = Column(Text, nullable=True)
    attachment_filename = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
