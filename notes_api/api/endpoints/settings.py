import logging

from fastapi import APIRouter, Depends
from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notes_api.core.database import get_db, upsert
from notes_api.core.exceptions import ServiceError
from notes_api.core.security import get_current_user
from notes_api.models.setting import QUICK_NOTE_KEY, Setting
from notes_api.schemas.auth import AuthenticatedUser
from notes_api.schemas.common import MessageResponse
from notes_api.schemas.setting import QuickNoteResponse, QuickNoteUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/quicknote", response_model=QuickNoteResponse)
async def get_quick_note(
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's quick note; empty until first saved"""
    try:
        result = await db.execute(
            select(Setting.value).where(
                and_(Setting.owner_id == current_user.id, Setting.key == QUICK_NOTE_KEY)
            )
        )
        value = result.scalar_one_or_none()
    except SQLAlchemyError:
        logger.exception("Failed to read quick note")
        raise ServiceError("Error al obtener la nota rápida")
    return QuickNoteResponse(value=value or "")


@router.put("/quicknote", response_model=MessageResponse)
async def save_quick_note(
    quick_note: QuickNoteUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create or overwrite the caller's quick note"""
    stmt = upsert(
        db,
        Setting,
        {
            "owner_id": current_user.id,
            "key": QUICK_NOTE_KEY,
            "value": quick_note.content,
            "updated_at": func.now(),
        },
        conflict_on=("owner_id", "key"),
    )
    try:
        await db.execute(stmt)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to save quick note")
        raise ServiceError("Error al guardar la nota rápida")
    return MessageResponse(message="OK")
