from pydantic import AliasChoices, BaseModel, Field, StrictBool, field_validator
from datetime import datetime, timezone
from typing import Optional

from notes_api.models.note import DEFAULT_CATEGORY, DEFAULT_COLOR


class NoteBase(BaseModel):
    title: str = Field("", validation_alias=AliasChoices("title", "nombre"))
    body: str = Field("", validation_alias=AliasChoices("body", "contenido"))
    due_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("due_at", "fecha_hora"))
    color: str = DEFAULT_COLOR
    category: str = Field(DEFAULT_CATEGORY, validation_alias=AliasChoices("category", "tipo"))
    pinned: StrictBool = Field(False, validation_alias=AliasChoices("pinned", "fijada"))

    @field_validator("title", "body", mode="before")
    @classmethod
    def null_as_empty(cls, value):
        return "" if value is None else value

    @field_validator("due_at", mode="before")
    @classmethod
    def blank_as_null(cls, value):
        # Date pickers send "" when cleared
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("due_at")
    @classmethod
    def as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    class Config:
        extra = "forbid"


class NoteCreate(NoteBase):
    pass


class NoteUpdate(NoteBase):
    """Full replacement of the mutable fields; omitted fields reset to defaults"""


class ArchiveToggle(BaseModel):
    is_archived: StrictBool

    class Config:
        extra = "forbid"


class RemindersToggle(BaseModel):
    notificaciones_activas: StrictBool

    class Config:
        extra = "forbid"


class NoteResponse(BaseModel):
    id: int
    owner_id: str
    title: str
    body: str
    due_at: Optional[datetime] = None
    due_date: Optional[str] = None
    due_time: Optional[str] = None
    color: str
    category: str
    pinned: bool
    archived: bool
    reminders_enabled: bool
    attachment_url: Optional[str] = None
    attachment_filename: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AttachmentResponse(BaseModel):
    message: str = "OK"
    attachment_url: str
    attachment_filename: str
