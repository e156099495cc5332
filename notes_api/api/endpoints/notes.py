import logging
from datetime import timezone, tzinfo
from functools import lru_cache
from typing import List, Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from sqlalchemy import and_, delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notes_api.core.config import settings
from notes_api.core.database import get_db
from notes_api.core.exceptions import BadRequestError, NotFoundError, ServiceError
from notes_api.core.security import get_blob_store, get_current_user
from notes_api.models.note import Note
from notes_api.schemas.auth import AuthenticatedUser
from notes_api.schemas.note import (
    ArchiveToggle,
    AttachmentResponse,
    NoteCreate,
    NoteResponse,
    NoteUpdate,
    RemindersToggle,
)
from notes_api.services.blob_store import BlobStore, BlobStoreError, attachment_key

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND = "Nota no encontrada o no tienes permiso para modificarla."


@lru_cache
def display_zone(name: str) -> tzinfo:
    # Slim images ship without a tz database; UTC needs none
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def to_response(note: Note) -> NoteResponse:
    """Convert a Note row, adding the due date/time as shown to the user"""
    due_date = due_time = None
    if note.due_at is not None:
        due_at = note.due_at
        if due_at.tzinfo is None:
            due_at = due_at.replace(tzinfo=timezone.utc)
        local = due_at.astimezone(display_zone(settings.DISPLAY_TIMEZONE))
        due_date = local.strftime("%Y-%m-%d")
        due_time = local.strftime("%H:%M")

    return NoteResponse(
        id=note.id,
        owner_id=note.owner_id,
        title=note.title,
        body=note.body,
        due_at=note.due_at,
        due_date=due_date,
        due_time=due_time,
        color=note.color,
        category=note.category,
        pinned=note.pinned,
        archived=note.archived,
        reminders_enabled=note.reminders_enabled,
        attachment_url=note.attachment_url,
        attachment_filename=note.attachment_filename,
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


def owned(note_id: int, owner_id: str):
    return and_(Note.id == note_id, Note.owner_id == owner_id)


async def list_notes(db: AsyncSession, owner_id: str, archived: bool) -> List[NoteResponse]:
    query = (
        select(Note)
        .where(and_(Note.owner_id == owner_id, Note.archived == archived))
        .order_by(Note.due_at.asc().nulls_last(), Note.id.asc())
    )
    try:
        result = await db.execute(query)
    except SQLAlchemyError:
        logger.exception("Failed to list notes")
        raise ServiceError("Error al obtener las notas")
    return [to_response(note) for note in result.scalars().all()]


async def update_owned(db: AsyncSession, note_id: int, owner_id: str, values: dict, error: str) -> Note:
    """UPDATE ... WHERE id AND owner RETURNING the row, or NotFoundError"""
    stmt = (
        update(Note)
        .where(owned(note_id, owner_id))
        .values(**values)
        .returning(Note)
        .execution_options(synchronize_session=False)
    )
    try:
        result = await db.execute(stmt)
        note = result.scalar_one_or_none()
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(f"Failed to update note {note_id}")
        raise ServiceError(error)

    if note is None:
        raise NotFoundError(NOT_FOUND)
    return note


@router.get("", response_model=List[NoteResponse])
async def get_active_notes(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's notes that are not archived"""
    return await list_notes(db, current_user.id, archived=False)


@router.get("/archived", response_model=List[NoteResponse])
async def get_archived_notes(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's archived notes"""
    return await list_notes(db, current_user.id, archived=True)


@router.post("", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
async def create_note(
    note: NoteCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a new note, always active"""
    db_note = Note(**note.model_dump(), owner_id=current_user.id, archived=False)
    db.add(db_note)
    try:
        await db.commit()
        await db.refresh(db_note)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to create note")
        raise ServiceError("Error al crear la nota")
    return to_response(db_note)


@router.put("/{note_id}", response_model=NoteResponse)
async def update_note(
    note_id: int,
    note_update: NoteUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Replace the mutable fields of a note"""
    note = await update_owned(
        db, note_id, current_user.id, note_update.model_dump(),
        error="Error al actualizar la nota",
    )
    return to_response(note)


@router.put("/{note_id}/archive", response_model=NoteResponse)
async def set_archived(
    note_id: int,
    toggle: ArchiveToggle,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Move a note between the active and archived lists"""
    note = await update_owned(
        db, note_id, current_user.id, {"archived": toggle.is_archived},
        error="Error al archivar la nota",
    )
    return to_response(note)


@router.put("/{note_id}/notifications", response_model=NoteResponse)
async def set_reminders(
    note_id: int,
    toggle: RemindersToggle,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Enable or disable push reminders for a note"""
    note = await update_owned(
        db, note_id, current_user.id, {"reminders_enabled": toggle.notificaciones_activas},
        error="Error al actualizar las notificaciones",
    )
    return to_response(note)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete a note"""
    try:
        result = await db.execute(
            delete(Note)
            .where(owned(note_id, current_user.id))
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(f"Failed to delete note {note_id}")
        raise ServiceError("Error al borrar la nota")

    if result.rowcount == 0:
        raise NotFoundError("Nota no encontrada o no tienes permiso para borrarla.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{note_id}/upload", response_model=AttachmentResponse)
async def upload_attachment(
    note_id: int,
    file: Optional[UploadFile] = File(None),
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store)
):
    """Store a file and attach it to the note, replacing any previous attachment"""
    if file is None or not file.filename:
        raise BadRequestError("No se ha proporcionado ningún archivo.")

    try:
        result = await db.execute(select(Note.id).where(owned(note_id, current_user.id)))
        exists = result.scalar_one_or_none() is not None
    except SQLAlchemyError:
        logger.exception(f"Failed to look up note {note_id} for upload")
        raise ServiceError("Error del servidor al subir el archivo.")
    if not exists:
        raise NotFoundError(NOT_FOUND)

    data = await file.read()
    key = attachment_key(current_user.id, note_id, file.filename)
    try:
        public_url = await blob_store.put(key, data, file.content_type)
    except BlobStoreError:
        logger.exception(f"Attachment upload failed for note {note_id}")
        raise ServiceError("Error del servidor al subir el archivo.")

    # If this fails the blob stays orphaned in the bucket; the client retries
    # with a fresh key.
    await update_owned(
        db, note_id, current_user.id,
        {"attachment_url": public_url, "attachment_filename": file.filename},
        error="Error del servidor al subir el archivo.",
    )
    return AttachmentResponse(attachment_url=public_url, attachment_filename=file.filename)
