import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notes_api.core.database import get_db, upsert
from notes_api.core.exceptions import ServiceError
from notes_api.core.security import get_current_user
from notes_api.models.push_subscription import PushSubscription
from notes_api.schemas.auth import AuthenticatedUser
from notes_api.schemas.common import MessageResponse
from notes_api.schemas.subscription import PushSubscriptionCreate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/save-subscription", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def save_subscription(
    subscription: PushSubscriptionCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Store the caller's push subscription, replacing any previous device"""
    stmt = upsert(
        db,
        PushSubscription,
        {
            "owner_id": current_user.id,
            "subscription": subscription.model_dump(exclude_none=True),
            "updated_at": func.now(),
        },
        conflict_on=("owner_id",),
    )
    try:
        await db.execute(stmt)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to save push subscription")
        raise ServiceError("Error al guardar la suscripción")
    return MessageResponse(message="OK")
