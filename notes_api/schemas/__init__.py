from .auth import AuthenticatedUser
from .common import MessageResponse, VersionResponse
from .note import (
    NoteCreate, NoteUpdate, NoteResponse,
    ArchiveToggle, RemindersToggle, AttachmentResponse,
)
from .setting import QuickNoteResponse, QuickNoteUpdate
from .subscription import PushSubscriptionCreate, SubscriptionKeys

__all__ = [
    "AuthenticatedUser",
    "MessageResponse", "VersionResponse",
    "NoteCreate", "NoteUpdate", "NoteResponse",
    "ArchiveToggle", "RemindersToggle", "AttachmentResponse",
    "QuickNoteResponse", "QuickNoteUpdate",
    "PushSubscriptionCreate", "SubscriptionKeys",
]
